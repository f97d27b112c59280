from decimal import Decimal

from app.models.enrollment_request import EnrollmentRequest

API = "/api/v1"
SHOTS = ["https://cdn.example.com/receipt.png"]
IBAN = "GE29NB0000000101904917"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_register_login_and_me(client):
    resp = client.post(f"{API}/auth/register", json={
        "email": "Nino@Example.com",
        "password": "secret123",
        "username": "nino_k",
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["email"] == "nino@example.com"
    assert len(body["user"]["referral_code"]) == 8

    resp = client.post(f"{API}/auth/login", json={"email": "nino@example.com", "password": "secret123"})
    assert resp.status_code == 200
    token = resp.get_json()["access_token"]

    resp = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["username"] == "nino_k"


def test_register_conflicts_and_bad_login(client, student):
    resp = client.post(f"{API}/auth/register", json={
        "email": student.email, "password": "x", "username": "someone_else",
    })
    assert resp.status_code == 409
    assert resp.get_json()["error"]["code"] == "USER_EXISTS"

    resp = client.post(f"{API}/auth/register", json={
        "email": "boss@example.com", "password": "x", "username": "boss", "role": "admin",
    })
    assert resp.status_code == 400

    resp = client.post(f"{API}/auth/login", json={"email": student.email, "password": "wrong"})
    assert resp.status_code == 401


def test_missing_token_is_401(client):
    resp = client.get(f"{API}/balance")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["code"] == "UNAUTHORIZED"


def test_enrollment_request_flow(client, auth_headers, student, admin, course, make_profile):
    referrer = make_profile()
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id,
        "paymentScreenshots": SHOTS,
        "referralCode": referrer.referral_code,
    })
    assert resp.status_code == 201
    request_id = resp.get_json()["request"]["id"]
    assert resp.get_json()["request"]["status"] == "pending"

    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id, "paymentScreenshots": SHOTS,
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INVALID_STATE"

    resp = client.get(f"{API}/admin/enrollment-requests?status=pending", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert [r["id"] for r in resp.get_json()["requests"]] == [request_id]

    resp = client.post(f"{API}/admin/enrollment-requests/{request_id}/approve", headers=auth_headers(admin), json={})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["enrollment"]["course_id"] == course.id
    assert body["referral_transaction"]["amount"] == 10.0

    resp = client.post(f"{API}/admin/enrollment-requests/{request_id}/approve", headers=auth_headers(admin), json={})
    assert resp.status_code == 400

    resp = client.get(f"{API}/me/enrollments", headers=auth_headers(student))
    assert [e["course_id"] for e in resp.get_json()["enrollments"]] == [course.id]


def test_admin_routes_reject_students(client, auth_headers, student, course):
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id, "paymentScreenshots": SHOTS,
    })
    request_id = resp.get_json()["request"]["id"]

    resp = client.post(f"{API}/admin/enrollment-requests/{request_id}/approve", headers=auth_headers(student))
    assert resp.status_code == 403
    assert resp.get_json()["error"]["code"] == "FORBIDDEN"
    resp = client.get(f"{API}/admin/withdrawals", headers=auth_headers(student))
    assert resp.status_code == 403


def test_unknown_request_is_404(client, auth_headers, admin):
    resp = client.post(f"{API}/admin/enrollment-requests/enr_missing/reject", headers=auth_headers(admin), json={})
    assert resp.status_code == 404


def test_reject_enrollment_route(client, auth_headers, db, student, admin, course):
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id, "paymentScreenshots": SHOTS,
    })
    request_id = resp.get_json()["request"]["id"]

    resp = client.post(
        f"{API}/admin/enrollment-requests/{request_id}/reject",
        headers=auth_headers(admin),
        json={"reason": "Wrong amount"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["request"]["status"] == "rejected"
    assert db.session.get(EnrollmentRequest, request_id).rejection_reason == "Wrong amount"


def test_bundle_request_route(client, auth_headers, student, bundle):
    resp = client.post(f"{API}/bundle-enrollment-requests", headers=auth_headers(student), json={
        "bundleId": bundle.id, "paymentScreenshots": SHOTS,
    })
    assert resp.status_code == 201
    assert resp.get_json()["request"]["bundle_id"] == bundle.id


def test_balance_and_bank_account(client, auth_headers, make_profile):
    user = make_profile("lecturer", balance="42.50")
    resp = client.get(f"{API}/balance", headers=auth_headers(user))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["balance"] == 42.5
    assert body["totalEarned"] == 42.5
    assert body["currency"] == "GEL"
    assert len(body["recent_transactions"]) == 1

    resp = client.patch(f"{API}/balance", headers=auth_headers(user), json={"bankAccountNumber": "GE12"})
    assert resp.status_code == 400

    resp = client.patch(f"{API}/balance", headers=auth_headers(user), json={"bankAccountNumber": "ge29 nb00 0000 0101 9049 17"})
    assert resp.status_code == 200
    assert resp.get_json()["bank_account_number"] == IBAN

    resp = client.get(f"{API}/balance/transactions?source=admin_adjustment", headers=auth_headers(user))
    assert resp.get_json()["pagination"]["total"] == 1


def test_withdrawal_routes(client, auth_headers, admin, make_profile):
    user = make_profile(balance="100")

    resp = client.post(f"{API}/withdrawals", headers=auth_headers(user), json={
        "amount": 150, "bankAccountNumber": IBAN,
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "INSUFFICIENT_FUNDS"

    resp = client.post(f"{API}/withdrawals", headers=auth_headers(user), json={
        "amount": 50, "bankAccountNumber": IBAN,
    })
    assert resp.status_code == 201
    wid = resp.get_json()["withdrawal"]["id"]

    resp = client.get(f"{API}/admin/withdrawals?status=pending", headers=auth_headers(admin))
    listed = resp.get_json()["requests"]
    assert [w["id"] for w in listed] == [wid]
    assert listed[0]["user_balance"] == 100.0

    resp = client.post(f"{API}/admin/withdrawals/{wid}/approve", headers=auth_headers(admin), json={})
    assert resp.status_code == 200
    assert resp.get_json()["withdrawal"]["status"] == "completed"

    resp = client.post(f"{API}/admin/withdrawals/{wid}/approve", headers=auth_headers(admin), json={})
    assert resp.status_code == 400

    assert user.balance == Decimal("50.00")
    resp = client.get(f"{API}/withdrawals", headers=auth_headers(user))
    assert resp.get_json()["withdrawals"][0]["status"] == "completed"


def test_withdrawal_reject_route_requires_notes(client, auth_headers, admin, make_profile):
    user = make_profile(balance="100")
    resp = client.post(f"{API}/withdrawals", headers=auth_headers(user), json={
        "amount": "25.00", "bankAccountNumber": IBAN,
    })
    wid = resp.get_json()["withdrawal"]["id"]

    resp = client.post(f"{API}/admin/withdrawals/{wid}/reject", headers=auth_headers(admin), json={})
    assert resp.status_code == 400

    resp = client.post(f"{API}/admin/withdrawals/{wid}/reject", headers=auth_headers(admin), json={"adminNotes": "Invalid IBAN"})
    assert resp.status_code == 200
    assert resp.get_json()["withdrawal"]["admin_notes"] == "Invalid IBAN"


def test_balance_adjustment_and_audit(client, auth_headers, admin, student):
    resp = client.post(f"{API}/admin/users/{student.id}/balance-adjustments", headers=auth_headers(admin), json={
        "amount": "12.00", "direction": "credit", "description": "Refund for duplicate payment",
    })
    assert resp.status_code == 201
    assert resp.get_json()["transaction"]["balance_after"] == 12.0

    resp = client.get(f"{API}/admin/ledger/audit", headers=auth_headers(admin))
    assert resp.status_code == 200
    assert resp.get_json()["inconsistent"] == []


def test_deactivated_user_is_locked_out(client, auth_headers, admin, student):
    headers = auth_headers(student)
    resp = client.post(f"{API}/admin/users/{student.id}/deactivate", headers=auth_headers(admin))
    assert resp.status_code == 200

    assert client.get(f"{API}/balance", headers=headers).status_code == 401


def test_referral_routes(client, auth_headers, make_profile):
    owner = make_profile(referral_code="SHAREME")
    resp = client.post(f"{API}/public/validate-referral-code", json={"referralCode": "shareme"})
    assert resp.get_json()["valid"] is True
    resp = client.post(f"{API}/public/validate-referral-code", json={"referralCode": "NOPE"})
    assert resp.get_json()["valid"] is False
    resp = client.post(f"{API}/public/validate-referral-code", json={})
    assert resp.status_code == 400

    resp = client.get(f"{API}/referrals/me", headers=auth_headers(owner))
    assert resp.get_json() == {
        "success": True, "referral_code": "SHAREME", "referrals": 0, "total_commission": 0.0,
    }


def test_re_enrollment_flag_parsing(client, auth_headers, student, make_course):
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": make_course(title="Fresh").id, "paymentScreenshots": SHOTS, "isReEnrollment": "false",
    })
    assert resp.status_code == 201
    assert resp.get_json()["request"]["is_re_enrollment"] is False

    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": make_course(title="Other").id, "paymentScreenshots": SHOTS, "isReEnrollment": "maybe",
    })
    assert resp.status_code == 400
    assert resp.get_json()["error"]["details"] == {"field": "isReEnrollment"}


def test_reject_enrollment_requires_string_reason(client, auth_headers, db, student, admin, course):
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id, "paymentScreenshots": SHOTS,
    })
    request_id = resp.get_json()["request"]["id"]

    resp = client.post(
        f"{API}/admin/enrollment-requests/{request_id}/reject",
        headers=auth_headers(admin),
        json={"reason": 123},
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "VALIDATION_ERROR"
    assert db.session.get(EnrollmentRequest, request_id).status == "pending"


def test_admin_referral_stats_route(client, auth_headers, admin, student, course, make_profile):
    referrer = make_profile()
    resp = client.post(f"{API}/enrollment-requests", headers=auth_headers(student), json={
        "courseId": course.id, "paymentScreenshots": SHOTS, "referralCode": referrer.referral_code,
    })
    request_id = resp.get_json()["request"]["id"]
    client.post(f"{API}/admin/enrollment-requests/{request_id}/approve", headers=auth_headers(admin), json={})

    resp = client.get(f"{API}/admin/referrals/stats", headers=auth_headers(admin))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["total_activations"] == 1
    assert body["referrals_by_course"] == [{"course_id": course.id, "course_title": course.title, "count": 1}]
    assert body["top_referrers"][0]["user_id"] == referrer.id
    assert body["top_referrers"][0]["total_commission"] == 10.0

    assert client.get(f"{API}/admin/referrals/stats", headers=auth_headers(student)).status_code == 403
