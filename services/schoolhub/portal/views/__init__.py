"""Export surface for portal.views.

Endpoints live in submodules by API area:
- portal.views.api_auth, api_organizations
- portal.views.api_curriculum, api_units, api_assignments, api_resources
- portal.views.api_enrollment, api_classrooms
- portal.views.api_chat, api_progress, api_analytics
- portal.views.media
"""

from .api_analytics import *  # noqa: F401,F403
from .api_assignments import *  # noqa: F401,F403
from .api_auth import *  # noqa: F401,F403
from .api_chat import *  # noqa: F401,F403
from .api_classrooms import *  # noqa: F401,F403
from .api_curriculum import *  # noqa: F401,F403
from .api_enrollment import *  # noqa: F401,F403
from .api_organizations import *  # noqa: F401,F403
from .api_progress import *  # noqa: F401,F403
from .api_resources import *  # noqa: F401,F403
from .api_units import *  # noqa: F401,F403
from .media import *  # noqa: F401,F403
