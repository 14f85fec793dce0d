import pytest

from fintrack.errors import ConflictError, DataIntegrityError, InvalidInputError, NotFoundError
from fintrack.models import Category, Merchant, Transaction
from fintrack.schemas import DeletePolicy
from fintrack.services import catalog, transaction_service as svc


@pytest.fixture
def groceries(db):
    """Groceries category with two merchants and three transactions."""
    svc.add_transaction(db, "Aldi", "Groceries", -1, 10.0, "2024-01-01")
    svc.add_transaction(db, "Aldi", None, None, 11.0, "2024-01-02")
    svc.add_transaction(db, "Lidl", "Groceries", -1, 12.0, "2024-01-03")
    return db.query(Category).filter(Category.name == "Groceries").one()


class TestCategories:
    def test_add(self, db):
        cat = catalog.add_category(db, " Salary ", 1)

        assert cat.id is not None
        assert cat.name == "Salary"
        assert cat.multiplier == 1

    def test_add_duplicate(self, db):
        catalog.add_category(db, "Salary", 1)

        with pytest.raises(ConflictError):
            catalog.add_category(db, "Salary", 1)

    def test_add_losing_race_is_conflict(self, db, monkeypatch):
        catalog.add_category(db, "Salary", 1)
        # Another request created the name after our existence check
        monkeypatch.setattr(catalog, "get_category_by_name", lambda db, name: None)

        with pytest.raises(ConflictError):
            catalog.add_category(db, "Salary", 1)

        assert db.query(Category).count() == 1

    @pytest.mark.parametrize("name, multiplier", [("", 1), ("Salary", 0), ("Salary", None)])
    def test_add_invalid(self, db, name, multiplier):
        with pytest.raises(InvalidInputError):
            catalog.add_category(db, name, multiplier)

    def test_update_fields_independently(self, db):
        cat = catalog.add_category(db, "Food", -1)

        catalog.update_category(db, cat.id, name="Dining")
        assert db.get(Category, cat.id).multiplier == -1

        catalog.update_category(db, cat.id, multiplier=1)
        updated = db.get(Category, cat.id)
        assert (updated.name, updated.multiplier) == ("Dining", 1)

    def test_update_rename_conflict(self, db):
        catalog.add_category(db, "Food", -1)
        rent = catalog.add_category(db, "Rent", -1)

        with pytest.raises(ConflictError):
            catalog.update_category(db, rent.id, name="Food")

    def test_update_same_name_is_fine(self, db):
        cat = catalog.add_category(db, "Food", -1)

        assert catalog.update_category(db, cat.id, name="Food").name == "Food"

    def test_update_missing(self, db):
        with pytest.raises(NotFoundError):
            catalog.update_category(db, 77, name="x")

    def test_delete_unused_with_default_policy(self, db):
        cat = catalog.add_category(db, "Unused", -1)

        catalog.delete_category(db, cat.id)

        assert db.get(Category, cat.id) is None

    def test_delete_reject_with_merchants(self, db, groceries):
        with pytest.raises(ConflictError):
            catalog.delete_category(db, groceries.id, DeletePolicy.REJECT)

        assert db.get(Category, groceries.id) is not None

    def test_delete_cascade(self, db, groceries):
        catalog.delete_category(db, groceries.id, DeletePolicy.CASCADE)

        assert db.query(Category).count() == 0
        assert db.query(Merchant).count() == 0
        assert db.query(Transaction).count() == 0

    def test_delete_cascade_leaves_other_categories(self, db, groceries):
        svc.add_transaction(db, "Landlord", "Rent", -1, 900.0, "2024-01-01")

        catalog.delete_category(db, groceries.id, DeletePolicy.CASCADE)

        assert [m.name for m in db.query(Merchant).all()] == ["Landlord"]
        assert db.query(Transaction).count() == 1

    def test_delete_orphan(self, db, groceries):
        catalog.delete_category(db, groceries.id, DeletePolicy.ORPHAN)

        assert db.query(Category).count() == 0
        merchants = db.query(Merchant).all()
        assert len(merchants) == 2
        assert all(m.category_id is None for m in merchants)
        assert db.query(Transaction).count() == 3
        # Orphaned merchants must be reassigned before their rows can be read
        with pytest.raises(DataIntegrityError):
            svc.list_transactions(db)

    def test_delete_missing(self, db):
        with pytest.raises(NotFoundError):
            catalog.delete_category(db, 5)


class TestMerchants:
    def test_add_creates_category(self, db):
        merchant = catalog.add_merchant(db, "Netflix", "Subscriptions", -1)

        assert merchant.category.name == "Subscriptions"
        assert merchant.category.multiplier == -1

    def test_add_reuses_category_and_its_multiplier(self, db):
        catalog.add_category(db, "Subscriptions", -1)

        merchant = catalog.add_merchant(db, "Spotify", "Subscriptions", 1)

        assert merchant.category.multiplier == -1
        assert db.query(Category).count() == 1

    def test_add_duplicate(self, db):
        catalog.add_merchant(db, "Netflix", "Subscriptions", -1)

        with pytest.raises(ConflictError):
            catalog.add_merchant(db, "Netflix", "Other", -1)

    def test_add_losing_race_is_conflict(self, db, monkeypatch):
        catalog.add_merchant(db, "Netflix", "Subscriptions", -1)
        monkeypatch.setattr(catalog, "get_merchant_by_name", lambda db, name: None)

        with pytest.raises(ConflictError):
            catalog.add_merchant(db, "Netflix", "Subscriptions", -1)

        assert db.query(Merchant).count() == 1

    def test_add_needs_category(self, db):
        with pytest.raises(InvalidInputError):
            catalog.add_merchant(db, "Netflix", "", -1)

    def test_update_moves_merchant_to_new_category(self, db):
        merchant = catalog.add_merchant(db, "Employer", "Misc", -1)

        catalog.update_merchant(db, merchant.id, category_name="Salary", category_multiplier=1)

        moved = db.get(Merchant, merchant.id)
        assert moved.category.name == "Salary"
        assert moved.category.multiplier == 1

    def test_update_rename(self, db):
        merchant = catalog.add_merchant(db, "Amzn", "Shopping", -1)

        assert catalog.update_merchant(db, merchant.id, name="Amazon").name == "Amazon"

    def test_update_rename_conflict(self, db):
        catalog.add_merchant(db, "Amazon", "Shopping", -1)
        other = catalog.add_merchant(db, "Ebay", "Shopping", -1)

        with pytest.raises(ConflictError):
            catalog.update_merchant(db, other.id, name="Amazon")

    def test_update_missing(self, db):
        with pytest.raises(NotFoundError):
            catalog.update_merchant(db, 3, name="x")

    def test_delete_reject_with_transactions(self, db, groceries):
        aldi = db.query(Merchant).filter(Merchant.name == "Aldi").one()

        with pytest.raises(ConflictError):
            catalog.delete_merchant(db, aldi.id)

    def test_delete_cascade(self, db, groceries):
        aldi = db.query(Merchant).filter(Merchant.name == "Aldi").one()

        catalog.delete_merchant(db, aldi.id, DeletePolicy.CASCADE)

        assert db.get(Merchant, aldi.id) is None
        assert db.query(Transaction).count() == 1
        assert db.get(Category, groceries.id) is not None

    def test_delete_orphan_not_allowed(self, db, groceries):
        aldi = db.query(Merchant).filter(Merchant.name == "Aldi").one()

        with pytest.raises(InvalidInputError):
            catalog.delete_merchant(db, aldi.id, DeletePolicy.ORPHAN)

        assert db.query(Transaction).count() == 3

    def test_delete_without_transactions_any_policy(self, db):
        merchant = catalog.add_merchant(db, "Idle", "Misc", -1)

        catalog.delete_merchant(db, merchant.id, DeletePolicy.ORPHAN)

        assert db.get(Merchant, merchant.id) is None
