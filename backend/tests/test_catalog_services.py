"""
Catalog and reference data services: categories, tags, products,
locations, suppliers and users.
"""

import uuid

import pytest

from stockledger.models import ActivityLog, Product, Purchase, Sale
from stockledger.models.inventory import MOVEMENT_PURCHASE
from stockledger.models.users import ROLE_CASHIER, ROLE_MANAGER
from stockledger.services import (
    category_service,
    location_service,
    products_service,
    stock_service,
    supplier_service,
    tag_service,
    user_service,
)
from stockledger.validation import DuplicateResourceError, NotFoundError, ValidationError


class TestCategories:
    def test_create_and_search(self, db_session):
        category_service.create_category(name="Spirits", description="Distilled")
        category_service.create_category(name="Soft drinks")
        db_session.commit()

        assert [c.name for c in category_service.list_categories()] == ["Soft drinks", "Spirits"]
        assert [c.name for c in category_service.search_categories("spir")] == ["Spirits"]

    def test_duplicate_name(self, db_session, category):
        with pytest.raises(DuplicateResourceError):
            category_service.create_category(name="Spirits")

    def test_delete_guarded_by_products(self, db_session, category, product):
        with pytest.raises(ValidationError):
            category_service.delete_category(category.id)

        products_service.update_product(product.id, patch={"category_id": None})
        category_service.delete_category(category.id)
        db_session.commit()

        with pytest.raises(NotFoundError):
            category_service.get_category(category.id)


class TestTags:
    def test_rename_and_lookup(self, db_session, tag):
        tag_service.rename_tag(tag.id, name="top-shelf")
        db_session.commit()

        assert tag_service.get_tag_by_name("top-shelf").id == tag.id
        assert tag_service.get_tag_by_name("premium") is None

    def test_delete_guarded_by_products(self, db_session, tag, product):
        products_service.add_tag(product.id, tag.id)
        db_session.commit()

        with pytest.raises(ValidationError):
            tag_service.delete_tag(tag.id)


class TestProducts:
    def test_create_with_tags(self, db_session, category, tag):
        p = products_service.create_product(
            patch={"name": "Gin 70cl", "barcode": "5000000000028", "unit": "bottle", "category_id": category.id},
            tag_ids=[tag.id],
        )
        db_session.commit()

        assert p.category_id == category.id
        assert [t.name for t in p.tags] == ["premium"]
        assert db_session.query(ActivityLog).filter(ActivityLog.action.like("Product created%")).count() == 1

    def test_name_required(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(patch={"barcode": "123"})
        with pytest.raises(ValidationError):
            products_service.create_product(patch={"name": "   "})

    def test_name_and_barcode_unique(self, db_session, product):
        with pytest.raises(DuplicateResourceError):
            products_service.create_product(patch={"name": "Vodka 70cl"})
        with pytest.raises(DuplicateResourceError):
            products_service.create_product(patch={"name": "Other", "barcode": "5000000000011"})

    def test_update_keeps_own_name(self, db_session, product):
        products_service.update_product(product.id, patch={"name": "Vodka 70cl", "unit": "btl"})
        db_session.commit()
        assert products_service.get_product(product.id).unit == "btl"

    def test_barcode_lookup(self, db_session, product):
        assert products_service.get_product_by_barcode(" 5000000000011 ").id == product.id
        with pytest.raises(NotFoundError):
            products_service.get_product_by_barcode("999")
        with pytest.raises(ValidationError):
            products_service.get_product_by_barcode("")

    def test_list_filters(self, db_session, product, other_product, category, tag, warehouse):
        products_service.add_tag(other_product.id, tag.id)
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=3, movement_type=MOVEMENT_PURCHASE
        )
        db_session.commit()

        assert [p.id for p in products_service.list_products(category_id=category.id)] == [product.id]
        assert [p.id for p in products_service.list_products(tag_id=tag.id)] == [other_product.id]
        assert [p.id for p in products_service.list_products(search="tonic")] == [other_product.id]
        assert [p.id for p in products_service.list_products(stocked=True)] == [product.id]
        assert [p.id for p in products_service.list_products(stocked=False)] == [other_product.id]
        assert len(products_service.list_products(unit="bottle")) == 2

    def test_tag_add_is_idempotent_and_remove_requires_tag(self, db_session, product, tag):
        products_service.add_tag(product.id, tag.id)
        products_service.add_tag(product.id, tag.id)
        db_session.commit()
        assert len(products_service.get_product(product.id).tags) == 1

        products_service.remove_tag(product.id, tag.id)
        db_session.commit()
        with pytest.raises(ValidationError):
            products_service.remove_tag(product.id, tag.id)

    def test_delete_guarded_by_stock(self, db_session, product, other_product, warehouse):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=1, movement_type=MOVEMENT_PURCHASE
        )
        db_session.commit()

        with pytest.raises(ValidationError):
            products_service.delete_product(product.id)

        products_service.delete_product(other_product.id)
        db_session.commit()
        assert db_session.get(Product, other_product.id) is None

    def test_delete_guarded_by_transaction_history(self, db_session, other_product, supplier, warehouse, user):
        db_session.add(Purchase(
            product_id=other_product.id, supplier_id=supplier.id, location_id=warehouse.id,
            quantity=2, unit_cost_cents=300,
        ))
        db_session.add(Sale(
            product_id=other_product.id, location_id=warehouse.id, user_id=user.id,
            quantity=1, unit_price_cents=500,
        ))
        db_session.commit()

        with pytest.raises(ValidationError, match="purchases, sales"):
            products_service.delete_product(other_product.id)
        assert db_session.get(Product, other_product.id) is not None

    def test_search_matches_description(self, db_session, product, other_product):
        products_service.update_product(product.id, patch={"description": "Premium wheat vodka"})
        db_session.commit()

        assert [p.id for p in products_service.list_products(search="WHEAT")] == [product.id]
        assert [p.id for p in products_service.list_products(search="vodka")] == [product.id]

    def test_categories_with_products(self, db_session, category, product, other_product):
        category_service.create_category(name="Mixers")
        db_session.commit()

        grouped = {c["name"]: c["products"] for c in category_service.list_categories_with_products()}
        assert [p["id"] for p in grouped["Spirits"]] == [str(product.id)]
        assert grouped["Mixers"] == []
        assert all(p["id"] != str(other_product.id) for items in grouped.values() for p in items)


class TestLocations:
    def test_create_update_and_unique(self, db_session, warehouse):
        loc = location_service.create_location(name="Cellar", address="Basement")
        db_session.commit()

        with pytest.raises(DuplicateResourceError):
            location_service.update_location(loc.id, patch={"name": "Warehouse"})

        location_service.update_location(loc.id, patch={"address": "Level -1"})
        db_session.commit()
        assert location_service.get_location(loc.id).address == "Level -1"

    def test_delete_guarded_by_stock(self, db_session, product, warehouse, bar):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=2, movement_type=MOVEMENT_PURCHASE
        )
        db_session.commit()

        with pytest.raises(ValidationError):
            location_service.delete_location(warehouse.id)

        location_service.delete_location(bar.id)
        db_session.commit()
        assert [loc.name for loc in location_service.list_locations()] == ["Warehouse"]


class TestSuppliers:
    def test_email_normalized_and_validated(self, db_session):
        s = supplier_service.create_supplier(name="North Wines", email="  Sales@North.Example ")
        db_session.commit()
        assert s.email == "sales@north.example"

        with pytest.raises(ValidationError):
            supplier_service.create_supplier(name="Bad", email="not-an-email")

    def test_unique_email(self, db_session, supplier):
        with pytest.raises(DuplicateResourceError):
            supplier_service.create_supplier(name="Another", email="ORDERS@demo.example")

    def test_search(self, db_session, supplier):
        assert [s.id for s in supplier_service.list_suppliers("demo")] == [supplier.id]
        assert supplier_service.list_suppliers("nothing") == []


class TestUsers:
    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_passwords_rejected(self, db_session, password):
        with pytest.raises(user_service.PasswordValidationError):
            user_service.create_user(username="weak", password=password)

    def test_create_hashes_password_and_defaults_role(self, db_session):
        u = user_service.create_user(username="alice", password="Str0ng!Pass")
        db_session.commit()

        assert u.role == ROLE_CASHIER
        assert u.password_hash != "Str0ng!Pass"
        assert user_service.verify_password("Str0ng!Pass", u.password_hash)
        assert not user_service.verify_password("wrong", u.password_hash)

    def test_role_is_case_insensitive_and_validated(self, db_session):
        u = user_service.create_user(username="bob", password="Str0ng!Pass", role="manager")
        assert u.role == ROLE_MANAGER
        with pytest.raises(ValidationError):
            user_service.create_user(username="carol", password="Str0ng!Pass", role="owner")

    def test_duplicate_username(self, db_session, user):
        with pytest.raises(DuplicateResourceError):
            user_service.create_user(username="manager", password="Str0ng!Pass")

    def test_update_and_deactivate(self, db_session, user):
        user_service.update_user(user.id, patch={"is_active": False, "password": "N3w!Password"})
        db_session.commit()

        assert user_service.list_users(active_only=True) == []
        assert user_service.verify_password("N3w!Password", user_service.get_user(user.id).password_hash)

        with pytest.raises(ValidationError):
            user_service.update_user(user.id, patch={"is_active": "no"})

    def test_delete_refused_when_attributed(self, db_session, user, product, warehouse):
        stock_service.adjust_stock(
            product_id=product.id, location_id=warehouse.id, delta=1,
            movement_type=MOVEMENT_PURCHASE, user_id=user.id,
        )
        db_session.commit()

        with pytest.raises(ValidationError):
            user_service.delete_user(user.id)

    def test_delete_unattributed_user(self, db_session):
        u = user_service.create_user(username="temp", password="Str0ng!Pass")
        db_session.commit()

        user_service.delete_user(u.id)
        db_session.commit()
        with pytest.raises(NotFoundError):
            user_service.get_user(u.id)

    def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            user_service.get_user(uuid.uuid4())
