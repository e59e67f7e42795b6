from enum import Enum


class RoleEnum(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ACADEMY = "ACADEMY"
    STUDENT = "STUDENT"

class AcademyStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class ExamStatusEnum(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

class QuestionTypeEnum(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"

    @property
    def has_options(self) -> bool:
        return self is not QuestionTypeEnum.SHORT_ANSWER

class ExamPurchaseStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"

class EnrollmentStatusEnum(str, Enum):
    PURCHASED = "PURCHASED"
    STARTED = "STARTED"
    PASSED = "PASSED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (EnrollmentStatusEnum.PASSED, EnrollmentStatusEnum.FAILED)

    def can_transition_to(self, target: "EnrollmentStatusEnum") -> bool:
        return target in ENROLLMENT_TRANSITIONS[self]


ENROLLMENT_TRANSITIONS = {
    EnrollmentStatusEnum.PURCHASED: frozenset({EnrollmentStatusEnum.STARTED}),
    EnrollmentStatusEnum.STARTED: frozenset({EnrollmentStatusEnum.PASSED, EnrollmentStatusEnum.FAILED}),
    EnrollmentStatusEnum.PASSED: frozenset(),
    EnrollmentStatusEnum.FAILED: frozenset(),
}

MIN_EXAM_DURATION_MINUTES = 5
TRUE_FALSE_OPTION_COUNT = 2
MIN_MULTIPLE_CHOICE_OPTIONS = 2
CERTIFICATE_SUFFIX_LENGTH = 8
