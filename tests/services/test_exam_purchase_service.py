import pytest

from app.core.constants import ExamStatusEnum, RoleEnum
from app.core.exceptions import ExamNotPurchasable, InvalidQuantity, NoRemainingQuantity, NotFound
from app.schemas.exam_purchase import PaymentConfirmation
from app.services.enrollment import enrollment_service
from app.services.exam_purchase import exam_purchase_service


def test_repeat_purchases_accumulate_quantity(db_session, academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory(price=10.0)

    first = exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=5)
    second = exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=2)

    assert second.id == first.id
    assert second.quantity == 7
    assert second.used_quantity == 0
    assert second.total_price == pytest.approx(70.0)


@pytest.mark.parametrize("quantity", [0, -3])
def test_purchase_rejects_non_positive_quantity(db_session, academy_factory, exam_factory, quantity):
    buyer = academy_factory()
    exam = exam_factory()
    with pytest.raises(InvalidQuantity):
        exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=quantity)


def test_purchase_requires_published_priced_exam(db_session, academy_factory, exam_factory):
    buyer = academy_factory()
    draft = exam_factory(status=ExamStatusEnum.DRAFT)
    free = exam_factory(price=0)

    with pytest.raises(ExamNotPurchasable):
        exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=draft.id, quantity=1)
    with pytest.raises(ExamNotPurchasable):
        exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=free.id, quantity=1)


def test_purchase_unknown_exam(db_session, academy_factory):
    buyer = academy_factory()
    with pytest.raises(NotFound):
        exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=9999, quantity=1)


def test_can_assign_without_purchase(db_session, academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory()

    result = exam_purchase_service.can_assign(db_session, academy_id=buyer.id, exam_id=exam.id)

    assert result.can_assign is False
    assert result.remaining_quantity == 0
    assert result.purchase is None


def test_increment_used_stops_at_quantity(db_session, academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory()
    purchase = exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=1)

    exam_purchase_service.increment_used(db_session, purchase_id=purchase.id)
    with pytest.raises(NoRemainingQuantity):
        exam_purchase_service.increment_used(db_session, purchase_id=purchase.id)

    purchase = exam_purchase_service.can_assign(db_session, academy_id=buyer.id, exam_id=exam.id).purchase
    assert purchase.used_quantity == 1
    assert purchase.remaining_quantity == 0


def test_assigning_marketplace_exam_consumes_licenses(db_session, academy_factory, exam_factory,
                                                      user_factory, context_for):
    buyer = academy_factory()
    exam = exam_factory()
    exam_purchase_service.purchase(db_session, academy_id=buyer.id, exam_id=exam.id, quantity=3)
    assigner = context_for(buyer.user, buyer)

    for _ in range(3):
        student = user_factory(RoleEnum.STUDENT)
        enrollment = enrollment_service.enroll(db_session, student_id=student.id, exam_id=exam.id, assigned_by=assigner)
        assert enrollment.is_assigned is True

    check = exam_purchase_service.can_assign(db_session, academy_id=buyer.id, exam_id=exam.id)
    assert check.can_assign is False
    assert check.remaining_quantity == 0

    fourth = user_factory(RoleEnum.STUDENT)
    with pytest.raises(NoRemainingQuantity):
        enrollment_service.enroll(db_session, student_id=fourth.id, exam_id=exam.id, assigned_by=assigner)

    purchase = exam_purchase_service.can_assign(db_session, academy_id=buyer.id, exam_id=exam.id).purchase
    assert purchase.used_quantity == 3


def test_record_payment_is_idempotent(db_session, academy_factory, exam_factory):
    buyer = academy_factory()
    exam = exam_factory(price=12.5)
    confirmation = PaymentConfirmation(exam_id=exam.id, academy_id=buyer.id, quantity=4, payment_id="pi_123")

    exam_purchase_service.record_payment(db_session, confirmation)
    purchase = exam_purchase_service.record_payment(db_session, confirmation)

    assert purchase.quantity == 4
    assert purchase.total_price == pytest.approx(50.0)
    assert purchase.payment_id == "pi_123"
