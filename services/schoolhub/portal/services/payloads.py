"""Model -> JSON dict converters shared by the API views.

Keys are camelCase because the portal clients read them that way. Datetimes
are left as objects; `JsonResponse` encodes them with DjangoJSONEncoder.
"""

from __future__ import annotations

from ..models import (
    Assessment,
    ChatMessage,
    ChatRoom,
    Classroom,
    Course,
    Organization,
    Part,
    Resource,
    Section,
    Subject,
    Submission,
    Topic,
    Unit,
)


def media_url(field) -> str | None:
    """Web path for a stored file, or None when the field is empty."""
    if not field:
        return None
    try:
        return field.url
    except ValueError:
        return None


def organization_payload(org: Organization | None, *, minimal: bool = False) -> dict | None:
    if org is None:
        return None
    data = {"id": org.id, "name": org.name, "code": org.code}
    if minimal:
        return data
    data.update(
        {
            "domain": org.domain,
            "logo": media_url(org.logo),
            "primaryColor": org.primary_color,
            "secondaryColor": org.secondary_color,
            "isActive": org.is_active,
            "createdAt": org.created_at,
            "updatedAt": org.updated_at,
        }
    )
    return data


def classroom_payload(classroom: Classroom | None) -> dict | None:
    if classroom is None:
        return None
    return {
        "id": classroom.id,
        "name": classroom.name,
        "yearLevel": classroom.year_level,
        "classNum": classroom.class_num,
        "isActive": classroom.is_active,
        "organizationId": classroom.organization_id,
    }


def user_payload(user, *, include_org: bool = False) -> dict:
    """Public view of an account. Never includes the password hash."""
    profile = getattr(user, "profile", None)
    classroom = getattr(profile, "classroom", None) if profile else None
    data = {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": getattr(profile, "role", ""),
        "nickname": getattr(profile, "nickname", "") if profile else "",
        "studentNumber": getattr(profile, "student_number", "") if profile else "",
        "profilePicture": media_url(profile.profile_picture) if profile else None,
        "organizationId": getattr(profile, "organization_id", None),
        "classroomId": getattr(profile, "classroom_id", None),
        "classroom": classroom_payload(classroom),
        "yearLevel": classroom.year_level if classroom else None,
        "classNum": classroom.class_num if classroom else None,
        "isActive": user.is_active,
        "createdAt": user.date_joined,
    }
    if include_org and profile is not None:
        data["organization"] = organization_payload(profile.organization)
    return data


def user_brief(user) -> dict:
    profile = getattr(user, "profile", None)
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "role": getattr(profile, "role", ""),
        "profilePicture": media_url(profile.profile_picture) if profile else None,
    }


def display_name(user) -> str:
    return f"{user.first_name} {user.last_name}".strip() or user.email


def section_payload(section: Section) -> dict:
    return {"id": section.id, "partId": section.part_id, "name": section.name, "order": section.order}


def part_payload(part: Part, *, nested: bool = False) -> dict:
    data = {"id": part.id, "unitId": part.unit_id, "name": part.name, "order": part.order}
    if nested:
        data["sections"] = [section_payload(s) for s in part.sections.all()]
    return data


def unit_payload(unit: Unit, *, nested: bool = False) -> dict:
    course = unit.course if unit.course_id else None
    data = {
        "id": unit.id,
        "name": unit.name,
        "title": unit.name,
        "order": unit.order,
        "number": unit.order,
        "description": unit.description,
        "courseId": unit.course_id,
        "organizationId": unit.organization_id,
        "course": {"id": course.id, "name": course.name, "subjectId": course.subject_id} if course else None,
        "createdAt": unit.created_at,
        "updatedAt": unit.updated_at,
    }
    if nested:
        data["parts"] = [part_payload(p, nested=True) for p in unit.parts.all()]
    return data


def topic_payload(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "courseId": topic.course_id,
        "sectionId": topic.section_id,
        "name": topic.name,
        "order": topic.order,
    }


def course_payload(course: Course, *, nested: bool = False) -> dict:
    data = {
        "id": course.id,
        "name": course.name,
        "description": course.description,
        "subjectId": course.subject_id,
        "subject": {"id": course.subject.id, "name": course.subject.name},
        "isArchived": course.is_archived,
        "createdAt": course.created_at,
        "updatedAt": course.updated_at,
    }
    if nested:
        data["units"] = [unit_payload(u, nested=True) for u in course.units.all()]
        data["topics"] = [topic_payload(t) for t in course.topics.all()]
    return data


def subject_payload(subject: Subject, *, nested: bool = False) -> dict:
    data = {
        "id": subject.id,
        "name": subject.name,
        "description": subject.description,
        "organizationId": subject.organization_id,
        "isArchived": subject.is_archived,
        "createdAt": subject.created_at,
        "updatedAt": subject.updated_at,
    }
    if nested:
        data["courses"] = [course_payload(c, nested=True) for c in subject.courses.all()]
    return data


def resource_payload(resource: Resource) -> dict:
    return {
        "id": resource.id,
        "title": resource.title,
        "description": resource.description,
        "type": resource.type,
        "filePath": media_url(resource.file),
        "originalFilename": resource.original_filename,
        "fileSize": resource.file_size,
        "mimeType": resource.mime_type,
        "isPublic": resource.is_public,
        "isShared": resource.is_shared,
        "tags": resource.tags or [],
        "organizationId": resource.organization_id,
        "subjectId": resource.subject_id,
        "courseId": resource.course_id,
        "unitId": resource.unit_id,
        "partId": resource.part_id,
        "sectionId": resource.section_id,
        "topicId": resource.topic_id,
        "templateId": resource.template_id,
        "createdById": resource.created_by_id,
        "createdAt": resource.created_at,
        "updatedAt": resource.updated_at,
    }


def submission_payload(submission: Submission, *, with_student: bool = False) -> dict:
    data = {
        "id": submission.id,
        "assessmentId": submission.assessment_id,
        "studentId": submission.student_id,
        "answers": submission.answers,
        "score": submission.score,
        "feedback": submission.feedback,
        "attempts": submission.attempts,
        "submittedAt": submission.submitted_at,
    }
    if with_student:
        data["student"] = user_brief(submission.student)
    return data


def assessment_payload(
    assessment: Assessment, *, submissions=None, include_resources: bool = True, with_students: bool = False
) -> dict:
    data = {
        "id": assessment.id,
        "title": assessment.title,
        "description": assessment.description,
        "type": assessment.type,
        "subtype": assessment.subtype or None,
        "category": assessment.category,
        "difficulty": assessment.difficulty or None,
        "timeLimit": assessment.time_limit,
        "points": assessment.points,
        "questions": assessment.questions,
        "instructions": assessment.instructions,
        "criteria": assessment.criteria,
        "autoGrade": assessment.auto_grade,
        "showFeedback": assessment.show_feedback,
        "dueDate": assessment.due_date,
        "availableFrom": assessment.available_from,
        "availableTo": assessment.available_to,
        "quarter": assessment.quarter,
        "maxAttempts": assessment.max_attempts,
        "shuffleQuestions": assessment.shuffle_questions,
        "allowReview": assessment.allow_review,
        "tags": assessment.tags or [],
        "published": assessment.published,
        "organizationId": assessment.organization_id,
        "courseId": assessment.course_id,
        "unitId": assessment.unit_id,
        "partId": assessment.part_id,
        "sectionId": assessment.section_id,
        "topicId": assessment.topic_id,
        "course": {"id": assessment.course.id, "name": assessment.course.name} if assessment.course_id else None,
        "unit": {"id": assessment.unit.id, "title": assessment.unit.name} if assessment.unit_id else None,
        "createdAt": assessment.created_at,
        "updatedAt": assessment.updated_at,
    }
    if include_resources:
        data["resources"] = [resource_payload(r) for r in assessment.resources.all()]
    if submissions is not None:
        data["submissions"] = [submission_payload(s, with_student=with_students) for s in submissions]
    return data


def message_payload(message: ChatMessage) -> dict:
    reply = message.reply_to
    return {
        "id": message.id,
        "roomId": message.room_id,
        "content": message.content,
        "messageType": message.message_type,
        "fileUrl": message.file_url or None,
        "fileName": message.file_name or None,
        "fileSize": message.file_size,
        "isRead": message.is_read,
        "isEdited": message.is_edited,
        "editedAt": message.edited_at,
        "createdAt": message.created_at,
        "sender": user_brief(message.sender),
        "replyTo": (
            {
                "id": reply.id,
                "content": reply.content,
                "sender": {
                    "id": reply.sender.id,
                    "firstName": reply.sender.first_name,
                    "lastName": reply.sender.last_name,
                },
            }
            if reply is not None
            else None
        ),
    }


def room_payload(room: ChatRoom, *, viewer=None, participants=None, last_message=None, unread_count: int = 0) -> dict:
    if participants is None:
        participants = [p.user for p in room.participants.filter(is_active=True).select_related("user__profile")]
    name = room.name
    if not name and room.type == ChatRoom.TYPE_DIRECT and viewer is not None:
        others = [u for u in participants if u.id != viewer.id]
        if len(others) == 1:
            name = display_name(others[0])
    return {
        "id": room.id,
        "name": name or None,
        "type": room.type,
        "isActive": room.is_active,
        "createdAt": room.created_at,
        "updatedAt": room.updated_at,
        "participants": [
            {
                "id": u.id,
                "name": display_name(u),
                "email": u.email,
                "role": getattr(getattr(u, "profile", None), "role", ""),
                "profilePicture": user_brief(u)["profilePicture"],
            }
            for u in participants
        ],
        "lastMessage": (
            {
                "id": last_message.id,
                "content": last_message.content,
                "createdAt": last_message.created_at,
                "sender": user_brief(last_message.sender),
            }
            if last_message is not None
            else None
        ),
        "unreadCount": unread_count,
    }


def daily_progress_payload(row, *, with_assessment: bool = False) -> dict:
    data = {
        "id": row.id,
        "studentId": row.student_id,
        "assessmentId": row.assessment_id,
        "assignmentId": row.assessment_id,
        "date": row.date,
        "score": row.score,
        "timeSpentMinutes": row.time_spent_minutes,
        "completed": row.completed,
        "attempts": row.attempts,
    }
    if with_assessment:
        assessment = row.assessment
        course = assessment.course if assessment.course_id else None
        data["assignment"] = {
            "title": assessment.title,
            "type": assessment.type,
            "course": (
                {"name": course.name, "subject": {"name": course.subject.name}} if course is not None else None
            ),
        }
    return data


def weekly_progress_payload(row) -> dict:
    return {
        "id": row.id,
        "studentId": row.student_id,
        "weekStart": row.week_start,
        "weekEnd": row.week_end,
        "totalScore": row.total_score,
        "assignmentsCompleted": row.assignments_completed,
        "averageScore": row.average_score,
        "bestDay": row.best_day or None,
        "worstDay": row.worst_day or None,
    }


def learning_pattern_payload(row) -> dict:
    return {
        "id": row.id,
        "patternType": row.pattern_type,
        "patternData": row.pattern_data,
        "updatedAt": row.updated_at,
    }


def study_session_payload(row) -> dict:
    return {
        "id": row.id,
        "startTime": row.started_at,
        "endTime": row.ended_at,
        "duration": row.duration_seconds,
    }


def activity_payload(row) -> dict:
    return {
        "id": row.id,
        "activityType": row.activity_type,
        "assignmentId": row.assessment_id,
        "resourceId": row.resource_id,
        "courseId": row.course_id,
        "metadata": row.details,
        "duration": row.duration_seconds,
        "timestamp": row.created_at,
    }


def attempt_payload(row) -> dict:
    return {
        "id": row.id,
        "assignmentId": row.assessment_id,
        "status": row.status,
        "startTime": row.started_at,
        "endTime": row.completed_at,
        "totalTime": row.total_time_seconds,
        "answers": row.answers,
        "score": row.score,
        "feedback": row.feedback,
    }
