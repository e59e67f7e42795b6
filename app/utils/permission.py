from app.models.exam import Exam
from app.models.enrollment import Enrollment
from app.schemas.user import UserContext
from app.core.constants import RoleEnum
from app.core.exceptions import Forbidden


class PermissionHelper:
    @staticmethod
    def is_super_admin(context: UserContext) -> bool:
        return context.role == RoleEnum.SUPER_ADMIN

    @staticmethod
    def is_academy(context: UserContext) -> bool:
        return context.role == RoleEnum.ACADEMY

    @staticmethod
    def is_student(context: UserContext) -> bool:
        return context.role == RoleEnum.STUDENT

    @staticmethod
    def owns_exam(context: UserContext, exam: Exam) -> bool:
        return context.academy_id is not None and context.academy_id == exam.academy_id

    @staticmethod
    def can_manage_exam(context: UserContext, exam: Exam) -> bool:
        if PermissionHelper.is_super_admin(context):
            return True
        return PermissionHelper.is_academy(context) and PermissionHelper.owns_exam(context, exam)

    @staticmethod
    def can_view_enrollment(context: UserContext, enrollment: Enrollment) -> bool:
        if PermissionHelper.is_super_admin(context):
            return True
        if PermissionHelper.is_student(context):
            return enrollment.student_id == context.user.id
        if PermissionHelper.is_academy(context):
            return (
                PermissionHelper.owns_exam(context, enrollment.exam)
                or enrollment.assigned_by_academy_id == context.academy_id
            )
        return False

    @staticmethod
    def require_exam_management_permission(context: UserContext, exam: Exam):
        if not PermissionHelper.can_manage_exam(context, exam):
            raise Forbidden("You do not have permission to manage this exam.")

    @staticmethod
    def require_enrollment_owner(context: UserContext, enrollment: Enrollment):
        if enrollment.student_id != context.user.id:
            raise Forbidden("You can only act on your own enrollments.")

    @staticmethod
    def require_enrollment_view_permission(context: UserContext, enrollment: Enrollment):
        if not PermissionHelper.can_view_enrollment(context, enrollment):
            raise Forbidden("You do not have permission to view this enrollment.")
