"""
Integration tests for the admin portal.

Tests cover:
- Admin authorization (401 without a token, 403 without an Admin grant)
- Vendor registration and member onboarding, including rollback of the
  auth account when a database step fails
- Staff and pharmacist management
- Products, users and cart orders

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import uuid

import pytest
from sqlalchemy import select

from healthle.models import (
    Order,
    OrderItem,
    PharmacistCertification,
    User,
    Vendor,
    VendorPharmacist,
    VendorStaffRole,
    VendorUser,
)


@pytest.mark.anyio
class TestAdminAuthorization:

    async def test_missing_token_returns_401(self, admin_client):
        """
        Arrange: No Authorization header
        Act: GET /api/admin/users
        Assert: 401 with the auth header message
        """
        response = await admin_client.get("/api/admin/users")

        assert response.status_code == 401
        assert response.json() == {"error": "認証ヘッダーが不正です"}
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_invalid_token_returns_401(self, admin_client):
        response = await admin_client.get(
            "/api/admin/users",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "認証が必要です"}

    async def test_non_admin_returns_403(self, admin_client, customer):
        """
        Arrange: Valid session of a user without an admin_users row
        Act: GET /api/admin/users
        Assert: 403
        """
        _, headers = customer

        response = await admin_client.get("/api/admin/users", headers=headers)

        assert response.status_code == 403
        assert response.json()["error"] == "管理者権限が必要です"

    async def test_health_is_public(self, admin_client):
        response = await admin_client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.anyio
class TestVendorRegistration:

    async def test_register_vendor_creates_owner_link(self, admin_client, admin_user, auth_provider, db_session):
        """
        Arrange: Admin session and a new store with owner credentials
        Act: POST /api/admin/vendors
        Assert: Vendor is active, owner account exists and is linked as Owner
        """
        _, headers = admin_user

        response = await admin_client.post(
            "/api/admin/vendors",
            headers=headers,
            json={
                "vendor_name": "みどり薬局",
                "email": "midori@example.com",
                "postal_code": "150-0001",
                "prefecture": "東京都",
                "city": "渋谷区",
                "address": "神宮前1-1-1",
                "owner_email": "owner@example.com",
                "owner_password": "secret123",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "出店者の登録が完了しました"
        assert data["user_id"] in auth_provider.users

        vendor = (await db_session.execute(select(Vendor).where(Vendor.id == data["vendor_id"]))).scalar_one()
        assert vendor.status == "active"
        assert vendor.address_line1 == "神宮前1-1-1"
        link = (await db_session.execute(
            select(VendorUser).where(VendorUser.vendor_id == vendor.id)
        )).scalar_one()
        assert link.user_id == data["user_id"]
        assert link.role == "Owner"

    async def test_register_vendor_rolls_back_when_account_fails(
        self, admin_client, admin_user, auth_provider, db_session
    ):
        """
        Arrange: Auth provider rejects account creation
        Act: POST /api/admin/vendors
        Assert: 500 naming the step, and no vendor row is left behind
        """
        _, headers = admin_user
        auth_provider.fail_create = True

        response = await admin_client.post(
            "/api/admin/vendors",
            headers=headers,
            json={
                "vendor_name": "失敗薬局",
                "owner_email": "owner@example.com",
                "owner_password": "secret123",
            },
        )

        assert response.status_code == 500
        assert response.json()["error"].startswith("ユーザーの作成に失敗しました")
        db_session.expire_all()
        vendors = (await db_session.execute(select(Vendor))).scalars().all()
        assert vendors == []

    async def test_register_vendor_validates_password_length(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.post(
            "/api/admin/vendors",
            headers=headers,
            json={"vendor_name": "短い", "owner_email": "owner@example.com", "owner_password": "123"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "バリデーションエラー"

    async def test_add_member_deletes_account_when_link_fails(self, admin_client, admin_user, auth_provider):
        """
        Arrange: Vendor id that does not exist (link insert violates the FK)
        Act: POST /api/admin/vendors/{id}/staff
        Assert: 500 and the just-created auth account is deleted
        """
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/admin/vendors/{uuid.uuid4()}/staff",
            headers=headers,
            json={"email": "member@example.com", "password": "secret123"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "スタッフと店舗の紐付けに失敗しました"
        assert len(auth_provider.deleted_ids) == 1
        assert auth_provider.users == {}

    async def test_get_vendor_lists_members_with_auth_email(self, admin_client, admin_user, vendor, auth_provider):
        _, headers = admin_user
        await admin_client.post(
            f"/api/admin/vendors/{vendor.id}/staff",
            headers=headers,
            json={"email": "member@example.com", "password": "secret123", "role": "Staff"},
        )

        response = await admin_client.get(f"/api/admin/vendors/{vendor.id}", headers=headers)

        assert response.status_code == 200
        members = response.json()["vendor_users"]
        assert len(members) == 1
        assert members[0]["role"] == "Staff"
        assert members[0]["users"]["email"] == "member@example.com"

    async def test_get_vendor_shows_unknown_user(self, admin_client, admin_user, vendor, db_session):
        _, headers = admin_user
        db_session.add(VendorUser(vendor_id=vendor.id, user_id=str(uuid.uuid4()), role="Staff"))
        await db_session.commit()

        response = await admin_client.get(f"/api/admin/vendors/{vendor.id}", headers=headers)

        assert response.json()["vendor_users"][0]["users"]["email"] == "不明なユーザー"

    async def test_get_unknown_vendor_returns_404(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.get(f"/api/admin/vendors/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"] == "指定された店舗が見つかりません"

    async def test_list_vendor_names(self, admin_client, admin_user, vendor):
        _, headers = admin_user

        response = await admin_client.get("/api/admin/vendors", headers=headers)

        assert response.json() == [{"id": vendor.id, "vendor_name": "さくら薬局"}]


@pytest.mark.anyio
class TestVendorManagement:

    async def test_add_staff_creates_user_and_role(self, admin_client, admin_user, vendor, auth_provider, db_session):
        """
        Arrange: Existing vendor
        Act: POST /api/vendors/{id}/staff for a non-pharmacist
        Assert: Account with the default password, users row, active role
        """
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={"name": "佐藤花子", "email": "hanako@example.com", "phone_number": "090-1111-2222", "role": "staff"},
        )

        assert response.status_code == 200
        staff = response.json()["staff"]
        assert staff["status"] == "active"
        assert staff["user"]["name"] == "佐藤花子"
        assert auth_provider.passwords[staff["user_id"]] == "12345678"

        user = (await db_session.execute(select(User).where(User.id == staff["user_id"]))).scalar_one()
        assert user.user_type == "vendor_staff"

    async def test_add_pharmacist_staff_requires_license(self, admin_client, admin_user, vendor, auth_provider):
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={"email": "pharma@example.com", "role": "pharmacist"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "薬剤師の場合、ライセンス番号と画像は必須です"
        assert auth_provider.users == {}

    async def test_add_staff_to_unknown_vendor_rolls_back(self, admin_client, admin_user, auth_provider, db_session):
        """
        Arrange: Vendor id that does not exist
        Act: POST /api/vendors/{id}/staff
        Assert: 500, auth account deleted, users row rolled back
        """
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/vendors/{uuid.uuid4()}/staff",
            headers=headers,
            json={"email": "ghost@example.com", "role": "staff"},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "スタッフロールの作成に失敗しました"
        assert len(auth_provider.deleted_ids) == 1
        db_session.expire_all()
        users = (await db_session.execute(select(User).where(User.email == "ghost@example.com"))).scalars().all()
        assert users == []

    async def test_vendor_detail_splits_staff_and_pharmacists(self, admin_client, admin_user, vendor):
        _, headers = admin_user
        await admin_client.post(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={"name": "店員", "email": "clerk@example.com", "role": "staff"},
        )
        await admin_client.post(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={
                "name": "薬剤師",
                "email": "pharma@example.com",
                "role": "pharmacist",
                "license_number": "LIC-001",
                "license_image_url": "https://example.com/license.png",
            },
        )

        response = await admin_client.get(f"/api/vendors/{vendor.id}", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["address"] == "〒100-0001 東京都 千代田区 千代田1-1"
        assert [m["user"]["email"] for m in data["staff_members"]] == ["clerk@example.com"]
        assert len(data["pharmacists"]) == 1
        certification = data["pharmacists"][0]["certification"]
        assert certification["license_number"] == "LIC-001"
        assert certification["verification_status"] == "pending"

    async def test_update_staff_changes_profile_and_license(self, admin_client, admin_user, vendor, db_session):
        _, headers = admin_user
        created = await admin_client.post(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={
                "name": "薬剤師",
                "email": "pharma@example.com",
                "role": "pharmacist",
                "license_number": "LIC-001",
                "license_image_url": "https://example.com/license.png",
            },
        )
        staff = created.json()["staff"]

        response = await admin_client.put(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={"staff_id": staff["id"], "name": "新しい名前", "status": "inactive", "verification_status": "verified"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "スタッフ情報を更新しました"}
        db_session.expire_all()
        role = (await db_session.execute(
            select(VendorStaffRole).where(VendorStaffRole.id == staff["id"])
        )).unique().scalar_one()
        assert role.status == "inactive"
        assert role.user.name == "新しい名前"
        certification = (await db_session.execute(
            select(PharmacistCertification).where(PharmacistCertification.staff_role_id == staff["id"])
        )).scalar_one()
        assert certification.verification_status == "verified"
        assert certification.license_number == "LIC-001"

    async def test_update_unknown_staff_returns_404(self, admin_client, admin_user, vendor):
        _, headers = admin_user

        response = await admin_client.put(
            f"/api/vendors/{vendor.id}/staff",
            headers=headers,
            json={"staff_id": str(uuid.uuid4()), "name": "x"},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "スタッフが見つかりません"

    async def test_add_pharmacist_links_vendor(self, admin_client, admin_user, vendor, db_session):
        """
        Arrange: Existing vendor
        Act: POST /api/vendors/{id}/pharmacists with camelCase license keys
        Assert: vendor_pharmacists row with the status, and a Pharmacist link
        """
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/vendors/{vendor.id}/pharmacists",
            headers=headers,
            json={"name": "鈴木一郎", "email": "suzuki@example.com", "licenseNumber": "PH-42", "verificationStatus": "verified"},
        )

        assert response.status_code == 200
        pharmacist = response.json()["pharmacist"]
        assert pharmacist["license_number"] == "PH-42"
        assert pharmacist["status"] == "verified"
        row = (await db_session.execute(
            select(VendorPharmacist).where(VendorPharmacist.vendor_id == vendor.id)
        )).scalar_one()
        link = (await db_session.execute(
            select(VendorUser).where(VendorUser.user_id == row.user_id)
        )).scalar_one()
        assert link.role == "Pharmacist"

    async def test_add_pharmacist_to_unknown_vendor_returns_404(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.post(
            f"/api/vendors/{uuid.uuid4()}/pharmacists",
            headers=headers,
            json={"email": "suzuki@example.com"},
        )

        assert response.status_code == 404

    async def test_update_vendor_partial(self, admin_client, admin_user, vendor):
        _, headers = admin_user

        response = await admin_client.put(
            f"/api/vendors/{vendor.id}",
            headers=headers,
            json={"business_hours": "9:00-18:00"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["business_hours"] == "9:00-18:00"
        assert data["vendor_name"] == "さくら薬局"


@pytest.mark.anyio
class TestAdminProducts:

    async def test_create_product_requires_vendor(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.post("/api/admin/products", headers=headers, json={"name": "目薬"})

        assert response.status_code == 400
        assert response.json()["error"] == "出店者の選択は必須です"

    async def test_create_product_rejects_unknown_vendor(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.post(
            "/api/admin/products",
            headers=headers,
            json={"name": "目薬", "vendor_id": str(uuid.uuid4())},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "指定された出店者が存在しません"

    async def test_create_and_update_product(self, admin_client, admin_user, vendor):
        """
        Arrange: Existing vendor
        Act: Create a product, then update only its price
        Assert: Defaults applied, vendor name attached, other fields kept
        """
        _, headers = admin_user
        created = await admin_client.post(
            "/api/admin/products",
            headers=headers,
            json={"name": "目薬", "vendor_id": vendor.id, "price": 800},
        )
        product = created.json()

        response = await admin_client.put(
            f"/api/admin/products/{product['id']}",
            headers=headers,
            json={"price": 900},
        )

        assert created.status_code == 200
        assert product["status"] == "draft"
        assert product["vendor_name"] == "さくら薬局"
        assert response.status_code == 200
        assert response.json()["price"] == 900
        assert response.json()["name"] == "目薬"

    async def test_get_unknown_product_returns_404(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.get(f"/api/admin/products/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"] == "商品が見つかりません"


@pytest.mark.anyio
class TestAdminOrdersAndUsers:

    async def _seed_order(self, db_session, customer, vendor, product):
        user, _ = customer
        order = Order(user_id=user.id, vendor_id=vendor.id, total_amount=3960, status="paid")
        db_session.add(order)
        await db_session.flush()
        db_session.add(OrderItem(order_id=order.id, product_id=product.id, quantity=2, price=1980))
        await db_session.commit()
        return order

    async def test_list_orders_resolves_names(self, admin_client, admin_user, customer, vendor, product, db_session):
        _, headers = admin_user
        await self._seed_order(db_session, customer, vendor, product)

        response = await admin_client.get("/api/admin/orders", headers=headers)

        assert response.status_code == 200
        orders = response.json()
        assert len(orders) == 1
        assert orders[0]["vendor_name"] == "さくら薬局"
        assert orders[0]["user_name"] == "山田太郎"

    async def test_order_detail_and_status_update(self, admin_client, admin_user, customer, vendor, product, db_session):
        _, headers = admin_user
        order = await self._seed_order(db_session, customer, vendor, product)

        detail = await admin_client.get(f"/api/admin/orders/{order.id}", headers=headers)
        updated = await admin_client.patch(
            f"/api/admin/orders/{order.id}",
            headers=headers,
            json={"status": "shipped"},
        )

        assert detail.json()["items"][0]["product_name"] == "かぜ薬"
        assert detail.json()["user_email"] == "customer@example.com"
        assert updated.status_code == 200
        assert updated.json()["status"] == "shipped"

    async def test_status_update_requires_status(self, admin_client, admin_user, customer, vendor, product, db_session):
        _, headers = admin_user
        order = await self._seed_order(db_session, customer, vendor, product)

        response = await admin_client.patch(f"/api/admin/orders/{order.id}", headers=headers, json={})

        assert response.status_code == 400
        assert response.json()["error"] == "ステータスは必須です"

    async def test_unknown_order_returns_404(self, admin_client, admin_user):
        _, headers = admin_user

        response = await admin_client.get(f"/api/admin/orders/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404

    async def test_users_list_and_detail(self, admin_client, admin_user, customer):
        _, headers = admin_user
        user, _ = customer

        listing = await admin_client.get("/api/admin/users", headers=headers)
        detail = await admin_client.get(f"/api/admin/users/{user.id}", headers=headers)
        missing = await admin_client.get(f"/api/admin/users/{uuid.uuid4()}", headers=headers)

        assert {u["email"] for u in listing.json()} == {"admin@example.com", "customer@example.com"}
        assert detail.json()["name"] == "山田太郎"
        assert missing.status_code == 404
