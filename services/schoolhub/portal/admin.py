from django.contrib import admin
from .models import (
    Assessment,
    AuditEvent,
    ChatRoom,
    Classroom,
    Course,
    DailyProgress,
    Organization,
    Resource,
    Subject,
    Submission,
    Unit,
    UserProfile,
)

@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "domain", "is_active")
    search_fields = ("name", "code")
    list_filter = ("is_active",)

@admin.register(Classroom)
class ClassroomAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "year_level", "class_num", "is_active")
    list_filter = ("organization", "year_level", "is_active")

@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "organization", "role", "classroom")
    list_filter = ("organization", "role")
    search_fields = ("user__email", "user__first_name", "user__last_name", "student_number")

@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "is_archived")
    list_filter = ("organization", "is_archived")
    search_fields = ("name",)

@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("name", "subject", "is_archived")
    list_filter = ("subject__organization", "is_archived")
    search_fields = ("name",)

@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ("name", "course", "order")
    list_filter = ("organization", "course")
    ordering = ("course", "order")

@admin.register(Assessment)
class AssessmentAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "course", "published", "quarter", "created_at")
    list_filter = ("organization", "type", "published", "quarter")
    search_fields = ("title",)

@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ("assessment", "student", "score", "attempts", "submitted_at")
    list_filter = ("assessment__organization",)

@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ("title", "type", "organization", "is_shared", "template", "created_at")
    list_filter = ("organization", "type", "is_shared")
    search_fields = ("title", "original_filename")

@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = ("__str__", "organization", "type", "is_active", "updated_at")
    list_filter = ("organization", "type", "is_active")

@admin.register(DailyProgress)
class DailyProgressAdmin(admin.ModelAdmin):
    list_display = ("student", "assessment", "date", "score", "completed", "attempts")
    list_filter = ("date", "completed")

@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ("created_at", "action", "actor_user", "organization", "target_type", "target_id")
    list_filter = ("action", "organization")
    search_fields = ("summary", "target_id")
    readonly_fields = [f.name for f in AuditEvent._meta.fields]
