"""Top-level URL map for the SchoolHub Django service.

Plain-language map:
- `/api/...` is the JSON API used by the teacher, student and admin portals.
- `/uploads/...` serves stored resource files and organization logos.
- `/admin/...` is the Django admin surface (operations only).
- `/healthz` is for the reverse proxy and uptime checks.
"""

from django.contrib import admin
from django.urls import path
from portal import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz", views.healthz),
    path("uploads/<path:path>", views.serve_upload),

    # Accounts, profiles and roster tools.
    path("api/auth/login", views.api_login),
    path("api/auth/register", views.api_register),
    path("api/auth/me", views.api_me),
    path("api/auth/profile", views.api_update_profile),
    path("api/auth/profile-picture", views.api_upload_profile_picture),
    path("api/auth/profile-pictures/<str:filename>", views.api_profile_picture_file),
    path("api/auth/logout", views.api_logout),
    path("api/auth/session/ping", views.api_session_ping),
    path("api/auth/students", views.api_students),
    path("api/auth/students/<int:student_id>", views.api_student_detail),
    path("api/auth/users/<int:user_id>/classroom", views.api_user_classroom),
    path("api/auth/classrooms", views.api_auth_classrooms),
    path("api/auth/classroom/<int:classroom_id>/students", views.api_classroom_students),
    path("api/auth/classroom/<int:classroom_id>/progress", views.api_classroom_progress),

    # Organizations (public list, superuser management).
    path("api/organizations", views.api_organizations),
    path("api/organizations/<int:org_id>", views.api_organization_detail),
    path("api/organizations/<int:org_id>/logo", views.api_organization_logo),

    # Curriculum.
    path("api/subjects", views.api_subjects),
    path("api/subjects/<int:subject_id>", views.api_subject_detail),
    path("api/courses", views.api_courses),
    path("api/courses/<int:course_id>", views.api_course_detail),
    path("api/courses/<int:course_id>/units", views.api_course_units),
    path("api/units", views.api_units),
    path("api/units/bulk", views.api_units_bulk),
    path("api/units/course/<int:course_id>", views.api_units_for_course),
    path("api/units/debug/course/<int:course_id>", views.api_units_debug_course),
    path("api/units/<int:unit_id>", views.api_unit_detail),

    # Assignments.
    path("api/assignments", views.api_assignments),
    path("api/assignments/teacher", views.api_teacher_assignments),
    path("api/assignments/resources", views.api_assignment_add_resources),
    path("api/assignments/<int:assessment_id>", views.api_assignment_detail),
    path("api/assignments/<int:assessment_id>/submit", views.api_assignment_submit),
    path(
        "api/assignments/<int:assessment_id>/resources/<int:resource_id>",
        views.api_assignment_remove_resource,
    ),

    # Resources.
    path("api/resources", views.api_resources),
    path("api/resources/shared", views.api_shared_resources),
    path("api/resources/allocate", views.api_resource_allocate),
    path("api/resources/<int:resource_id>", views.api_resource_detail),

    # Enrollment and classrooms.
    path("api/enrollment/subjects", views.api_enrollment_subjects),
    path("api/enrollment/courses/<int:subject_id>", views.api_enrollment_courses),
    path("api/enrollment/enroll", views.api_enroll),
    path("api/enrollment/unenroll/<int:course_id>", views.api_unenroll),
    path("api/enrollment/my-courses", views.api_my_courses),
    path("api/classrooms", views.api_classroom_list),
    path("api/classrooms/<int:classroom_id>/students", views.api_classroom_detail_students),
    path("api/classrooms/<int:classroom_id>/progress", views.api_classroom_progress_all),
    path("api/classrooms/<int:classroom_id>/courses", views.api_classroom_courses),

    # Messaging.
    path("api/chat/rooms", views.api_chat_rooms),
    path("api/chat/rooms/<int:room_id>/messages", views.api_chat_messages),
    path("api/chat/rooms/<int:room_id>/participants", views.api_chat_add_participant),
    path("api/chat/rooms/<int:room_id>/participants/<int:user_id>", views.api_chat_remove_participant),
    path("api/chat/messages/<int:message_id>", views.api_chat_message_detail),
    path("api/chat/unread-count", views.api_chat_unread_count),
    path("api/chat/available-users", views.api_chat_available_users),

    # Progress and analytics.
    path("api/progress/daily", views.api_progress_daily),
    path("api/progress/student/<int:student_id>", views.api_progress_student),
    path("api/progress/class/<int:course_id>", views.api_progress_class),
    path("api/analytics/session/start", views.api_analytics_session_start),
    path("api/analytics/session/<int:session_id>/end", views.api_analytics_session_end),
    path("api/analytics/activity", views.api_analytics_activity),
    path("api/analytics/assignment/start", views.api_analytics_attempt_start),
    path("api/analytics/assignment/<int:attempt_id>/complete", views.api_analytics_attempt_complete),
    path("api/analytics/student/<int:student_id>", views.api_analytics_student),
    path("api/analytics/school", views.api_analytics_school),
]
