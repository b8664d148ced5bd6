from __future__ import annotations

from django import forms

from .models import Classroom, UserProfile

_CLASS_NUM_CHOICES = [(str(n), str(n)) for n in Classroom.CLASS_NUMBERS]


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)
    organization = forms.CharField(required=False, max_length=64)


class RegisterForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(min_length=6, strip=False)
    firstName = forms.CharField(max_length=150)
    lastName = forms.CharField(max_length=150)
    role = forms.ChoiceField(choices=[(UserProfile.ROLE_TEACHER, "Teacher"), (UserProfile.ROLE_STUDENT, "Student")])
    yearLevel = forms.ChoiceField(choices=Classroom.YEAR_LEVEL_CHOICES, required=False)
    classNum = forms.TypedChoiceField(choices=_CLASS_NUM_CHOICES, coerce=int, required=False, empty_value=None)
    organization = forms.CharField(required=False, max_length=64)


class ProfileForm(forms.Form):
    """Partial profile update; absent keys are left alone by the view."""

    firstName = forms.CharField(max_length=150, required=False)
    lastName = forms.CharField(max_length=150, required=False)
    email = forms.EmailField(required=False)
    nickname = forms.CharField(max_length=100, required=False)
    password = forms.CharField(min_length=6, required=False, strip=False)

    def clean(self):
        cleaned = super().clean()
        for name in ("firstName", "lastName"):
            if name in self.data and not (self.data.get(name) or "").strip():
                self.add_error(name, "This field cannot be empty.")
        return cleaned


class StudentUpdateForm(ProfileForm):
    gradeLevel = forms.ChoiceField(choices=Classroom.YEAR_LEVEL_CHOICES, required=False)


class ClassroomPlacementForm(forms.Form):
    yearLevel = forms.ChoiceField(choices=Classroom.YEAR_LEVEL_CHOICES)
    classNum = forms.TypedChoiceField(choices=_CLASS_NUM_CHOICES, coerce=int, required=False, empty_value=None)


class ClassroomProgressForm(forms.Form):
    newYearLevel = forms.ChoiceField(choices=Classroom.YEAR_LEVEL_CHOICES)
    newClassNum = forms.TypedChoiceField(choices=_CLASS_NUM_CHOICES, coerce=int, required=False, empty_value=None)


class OrganizationForm(forms.Form):
    name = forms.CharField(max_length=200)
    code = forms.CharField(max_length=32)
    domain = forms.CharField(max_length=255, required=False)
    primaryColor = forms.CharField(max_length=16, required=False)
    secondaryColor = forms.CharField(max_length=16, required=False)


class ResourceUploadForm(forms.Form):
    file = forms.FileField(required=True)
    title = forms.CharField(max_length=200)
    description = forms.CharField(required=False, widget=forms.Textarea)
    courseId = forms.IntegerField(required=False, min_value=1)
    unitId = forms.IntegerField(required=False, min_value=1)
    tags = forms.CharField(required=False)
    isPublic = forms.CharField(required=False)
    isShared = forms.CharField(required=False)


class DailyProgressForm(forms.Form):
    assignmentId = forms.IntegerField(min_value=1)
    score = forms.IntegerField(min_value=0, max_value=100, required=False)
    timeSpentMinutes = forms.IntegerField(min_value=0, required=False)
    completed = forms.BooleanField(required=False)


class ActivityForm(forms.Form):
    activityType = forms.CharField(max_length=60)
    sessionId = forms.IntegerField(min_value=1, required=False)
    assignmentId = forms.IntegerField(min_value=1, required=False)
    resourceId = forms.IntegerField(min_value=1, required=False)
    courseId = forms.IntegerField(min_value=1, required=False)
    page = forms.CharField(max_length=255, required=False)
    questionId = forms.CharField(max_length=64, required=False)
    duration = forms.IntegerField(min_value=0, required=False)


class AttemptCompleteForm(forms.Form):
    score = forms.FloatField(min_value=0, max_value=100, required=False)
    feedback = forms.CharField(required=False)
