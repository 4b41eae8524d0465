"""
Tests for funding source references and their resolution against
balance snapshots.
"""

import pytest

from models import payment_source as refs
from models.account import AccountSnapshots
from models.payment_source import BankAccount, Cash, CreditCard
from services.payment_source import BALANCE_POLICY, apply_delta, resolve
from utils.exceptions import InsufficientDataError, NotFoundError


@pytest.fixture
def snapshots() -> AccountSnapshots:
    return AccountSnapshots(
        cash=150.0,
        bank_accounts={"main": 1000.0},
        credit_cards={"visa": 200.0},
        versions={("bank_accounts", "main"): 3},
        names={("bank_accounts", "main"): "Main account"},
    )


# =============================================================================
# Record conversion
# =============================================================================


class TestFromRecord:

    def test_no_source(self):
        assert refs.from_record(None) is None
        assert refs.from_record("") is None

    @pytest.mark.parametrize("method, method_id, expected", [
        ("cash", None, Cash()),
        ("cash_in_hand", None, Cash()),
        ("bank_account", "main", BankAccount("main")),
        ("bank", 7, BankAccount("7")),
        ("credit_card", "visa", CreditCard("visa")),
    ])
    def test_known_tags(self, method, method_id, expected):
        assert refs.from_record(method, method_id) == expected

    def test_account_variant_without_id(self):
        with pytest.raises(InsufficientDataError):
            refs.from_record("credit_card", None)

    def test_unknown_tag(self):
        with pytest.raises(InsufficientDataError):
            refs.from_record("paypal", "x")

    def test_to_record(self):
        assert refs.to_record(BankAccount("main")) == {
            "connected_payment_source": "bank_account",
            "connected_payment_source_id": "main",
        }
        assert refs.to_record(Cash())["connected_payment_source_id"] is None


# =============================================================================
# Resolution
# =============================================================================


class TestResolve:

    def test_missing_ref(self, snapshots):
        with pytest.raises(InsufficientDataError):
            resolve(None, snapshots)

    def test_account_without_id(self, snapshots):
        with pytest.raises(InsufficientDataError):
            resolve(BankAccount(""), snapshots)

    def test_unknown_account(self, snapshots):
        with pytest.raises(NotFoundError):
            resolve(BankAccount("savings"), snapshots)
        with pytest.raises(NotFoundError):
            resolve(CreditCard("amex"), snapshots)

    def test_cash(self, snapshots):
        handle = resolve(Cash(), snapshots)
        assert handle.balance == 150.0
        assert handle.version is None

    def test_bank_account(self, snapshots):
        handle = resolve(BankAccount("main"), snapshots)
        assert handle.balance == 1000.0
        assert handle.version == 3
        assert handle.name == "Main account"

    def test_resolution_has_no_side_effects(self, snapshots):
        resolve(CreditCard("visa"), snapshots)
        assert snapshots.credit_cards == {"visa": 200.0}

    def test_set_balance_writes_into_snapshot(self, snapshots):
        handle = resolve(BankAccount("main"), snapshots)
        handle.set_balance(900.0, version=4)
        assert snapshots.bank_accounts["main"] == 900.0
        assert snapshots.version_of("bank_accounts", "main") == 4


# =============================================================================
# Balance policy
# =============================================================================


class TestBalancePolicy:

    def test_card_is_debt(self):
        assert BALANCE_POLICY[CreditCard].increases_on_charge
        assert not BALANCE_POLICY[BankAccount].increases_on_charge
        assert not BALANCE_POLICY[Cash].increases_on_charge

    def test_charge_direction(self, snapshots):
        assert resolve(Cash(), snapshots).charge_delta(50) == -50
        assert resolve(CreditCard("visa"), snapshots).charge_delta(50) == 50

    def test_deposit_direction(self, snapshots):
        assert resolve(BankAccount("main"), snapshots).deposit_delta(50) == 50
        assert resolve(CreditCard("visa"), snapshots).deposit_delta(50) == -50

    def test_apply_delta_clamps_at_zero(self):
        assert apply_delta(30.0, -100.0) == 0.0
        assert apply_delta(100.0, -30.0) == 70.0
        assert apply_delta(0.1, 0.2) == 0.3
