"""Tests for CreditLedgerService and the credit repositories."""

from decimal import Decimal
from uuid import uuid4

import pytest

from copay_ledger.core.exceptions import CreditLedgerInvariantError
from copay_ledger.models.credit_transaction import CreditTransactionType
from copay_ledger.models.patient_credit import PatientCredit
from copay_ledger.models.payment import Payment
from copay_ledger.repositories.credit_transaction_repository import CreditTransactionRepository
from copay_ledger.repositories.patient_credit_repository import PatientCreditRepository
from copay_ledger.services.credit_ledger import CreditLedgerService


@pytest.fixture
def ledger(db_session):
    return CreditLedgerService(db_session)


@pytest.fixture
def payment(db_session, patient, payment_method):
    payment = Payment(
        patient_id=patient.id,
        payment_method_id=payment_method.id,
        amount=Decimal("35.00"),
        currency="USD",
        request_key=str(uuid4()),
    )
    db_session.add(payment)
    db_session.commit()
    return payment


class TestCredit:
    def test_creates_balance_and_audit_entry(self, db_session, ledger, patient, payment):
        txn = ledger.credit(patient.id, Decimal("10.00"), payment.id)
        db_session.commit()

        assert txn.transaction_type == CreditTransactionType.OVERPAYMENT_CREDIT.value
        assert txn.amount == Decimal("10.00")
        assert txn.description == f"Overpayment credit from payment {payment.id}"
        assert ledger.get_balance(patient.id) == Decimal("10.00")

    def test_accumulates(self, db_session, ledger, patient, payment):
        ledger.credit(patient.id, Decimal("10.00"), payment.id)
        ledger.credit(patient.id, Decimal("2.50"), payment.id)
        db_session.commit()

        assert ledger.get_balance(patient.id) == Decimal("12.50")
        _, transactions = ledger.get_account(patient.id)
        assert len(transactions) == 2

    def test_rejects_non_positive_amount(self, ledger, patient, payment):
        with pytest.raises(ValueError):
            ledger.credit(patient.id, Decimal("0"), payment.id)

    def test_balance_defaults_to_zero(self, ledger, patient):
        assert ledger.get_balance(patient.id) == Decimal("0")
        credit, transactions = ledger.get_account(patient.id)
        assert credit is None
        assert transactions == []


class TestReverseForPayment:
    def test_reverses_and_records(self, db_session, ledger, patient, payment):
        ledger.credit(patient.id, Decimal("10.00"), payment.id)
        db_session.commit()

        reversed_total = ledger.reverse_for_payment(payment.id)
        db_session.commit()

        assert reversed_total == Decimal("10.00")
        assert ledger.get_balance(patient.id) == Decimal("0.00")
        reversals = CreditTransactionRepository(db_session).get_by_payment_id(
            payment.id, CreditTransactionType.CREDIT_REVERSAL
        )
        assert len(reversals) == 1
        assert reversals[0].amount == Decimal("10.00")

    def test_leaves_other_credit_alone(self, db_session, ledger, patient, payment):
        other_payment_id = uuid4()
        ledger.credit(patient.id, Decimal("7.00"), None)
        ledger.credit(patient.id, Decimal("10.00"), payment.id)
        db_session.commit()

        ledger.reverse_for_payment(payment.id)
        db_session.commit()

        assert ledger.get_balance(patient.id) == Decimal("7.00")
        assert ledger.reverse_for_payment(other_payment_id) == Decimal("0")

    def test_nothing_to_reverse(self, ledger, payment):
        assert ledger.reverse_for_payment(payment.id) == Decimal("0")

    def test_missing_balance_row(self, db_session, ledger, patient, payment):
        ledger.credit(patient.id, Decimal("10.00"), payment.id)
        db_session.commit()
        db_session.query(PatientCredit).delete()
        db_session.commit()

        with pytest.raises(CreditLedgerInvariantError):
            ledger.reverse_for_payment(payment.id)

    def test_insufficient_balance(self, db_session, ledger, patient, payment):
        ledger.credit(patient.id, Decimal("10.00"), payment.id)
        db_session.commit()
        assert PatientCreditRepository(db_session).decrement_if_sufficient(
            patient.id, Decimal("5.00")
        )
        db_session.commit()

        with pytest.raises(CreditLedgerInvariantError):
            ledger.reverse_for_payment(payment.id)


class TestPatientCreditRepository:
    def test_decrement_refuses_to_go_negative(self, db_session, patient):
        repo = PatientCreditRepository(db_session)
        repo.get_or_create(patient.id)
        repo.increment(patient.id, Decimal("3.00"))

        assert repo.decrement_if_sufficient(patient.id, Decimal("3.01")) is False
        assert repo.decrement_if_sufficient(patient.id, Decimal("3.00")) is True
        assert repo.get_by_patient_id(patient.id).amount == Decimal("0.00")

    def test_get_or_create_is_stable(self, db_session, patient):
        repo = PatientCreditRepository(db_session)
        first = repo.get_or_create(patient.id)
        second = repo.get_or_create(patient.id)
        assert first.id == second.id
