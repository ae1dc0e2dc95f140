from studentjobs.db.mongodb import COLLECTIONS
from studentjobs.schemas.schemas import LoginStatus
from studentjobs.services.admin_login_service import AdminLoginService
from tests import factories


def test_admin_routes_require_admin(client, auth, student):
    assert client.get("/api/admin/dashboard-data").status_code in (401, 403)
    response = client.get("/api/admin/dashboard-data", headers=auth(student))
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_dashboard_data(client, auth, mongo, admin, verified_employer):
    approved = factories.approved_student(admin)
    pending = factories.create_student()
    factories.submit_kyc(pending, fullName="Rohan Iyer")
    job = factories.create_job(verified_employer, admin)
    factories.create_job(verified_employer, jobTitle="Pending Cashier")
    factories.apply(approved, job)
    logins = AdminLoginService()
    logins.record(admin, LoginStatus.success)
    logins.record(None, LoginStatus.failed, email="intruder@studentjobs.com", failure_reason="Invalid email or password")
    # out of sync on purpose
    mongo[COLLECTIONS["users"]].update_one({"_id": approved["_id"]}, {"$set": {"kycStatus": "pending"}})

    response = client.get("/api/admin/dashboard-data", headers=auth(admin))
    assert response.status_code == 200
    data = response.json()["data"]

    assert {row["studentName"] for row in data["kycData"]} == {"Asha Verma", "Rohan Iyer"}
    assert len(data["loginHistory"]) == 2

    stats = data["statistics"]
    assert stats["kyc"] == {
        "total": 2, "pending": 1, "inReview": 0, "approved": 1, "rejected": 0, "approvalRate": 50.0,
    }
    assert stats["logins"]["successRate"] == 50.0
    assert stats["users"] == {"total": 4, "students": 2, "employers": 1, "admins": 1}
    assert stats["jobs"] == {"total": 2, "active": 2, "pendingApproval": 1}
    assert stats["applications"] == {"total": 1, "recent": 1}
    assert stats["consistency"]["inconsistentUsers"] == 1


def test_list_users_filters(client, auth, admin, student, employer):
    def emails(query=""):
        body = client.get(f"/api/admin/users?{query}", headers=auth(admin)).json()["data"]
        return {u["email"] for u in body["users"]}

    assert emails("userType=student") == {student["email"]}
    assert emails("status=pending") == {employer["email"]}
    assert emails(f"search={student['name']}") == {student["email"]}
    assert len(emails()) == 3

    body = client.get("/api/admin/users?limit=1&page=2", headers=auth(admin)).json()["data"]
    assert len(body["users"]) == 1
    assert body["pagination"]["total"] == 3
    assert "password" not in body["users"][0]


def test_activate_and_approve_user(client, auth, admin, employer):
    response = client.put(f"/api/admin/users/{employer['_id']}/approval", json={"approvalStatus": "approved"},
                          headers=auth(admin))
    assert response.json()["data"]["approvalStatus"] == "approved"

    response = client.put(f"/api/admin/users/{employer['_id']}/status", json={"isActive": False},
                          headers=auth(admin))
    assert response.json()["message"] == "User deactivated"
    assert client.get("/api/auth/me", headers=auth(employer)).status_code == 403

    assert client.put(f"/api/admin/users/{employer['_id']}/approval", json={"approvalStatus": "maybe"},
                      headers=auth(admin)).status_code == 422


def test_delete_user_guards(client, auth, mongo, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    student = factories.approved_student(admin)
    factories.apply(student, job)

    assert client.delete(f"/api/admin/users/{admin['_id']}", headers=auth(admin)).status_code == 400

    response = client.delete(f"/api/admin/users/{verified_employer['_id']}", headers=auth(admin))
    assert response.status_code == 409
    assert response.json()["code"] == "HAS_ACTIVE_JOBS"

    response = client.delete(f"/api/admin/users/{student['_id']}", headers=auth(admin))
    assert response.json()["code"] == "HAS_OPEN_APPLICATIONS"

    mongo[COLLECTIONS["applications"]].update_many({}, {"$set": {"status": "closed"}})
    assert client.delete(f"/api/admin/users/{student['_id']}", headers=auth(admin)).status_code == 200
    assert factories.reload(student) is None
    assert mongo[COLLECTIONS["kycs"]].count_documents({"userId": student["_id"]}) == 0

    assert client.delete(f"/api/admin/users/{student['_id']}", headers=auth(admin)).status_code == 404


def test_login_history_and_stats(client, auth, admin):
    logins = AdminLoginService()
    first = logins.record(admin, LoginStatus.success, ip_address="10.0.0.1")
    logins.record(admin, LoginStatus.failed, failure_reason="Invalid email or password")
    logins.record(None, LoginStatus.failed, email="Ghost@StudentJobs.com")
    closed = logins.record_logout(first)
    assert closed["sessionDuration"] >= 0

    body = client.get("/api/admin/login-history", headers=auth(admin)).json()["data"]
    assert body["pagination"]["total"] == 3
    assert body["loginHistory"][0]["adminEmail"] == "ghost@studentjobs.com"
    assert body["loginHistory"][0]["adminName"] == "Unknown"

    failed = client.get("/api/admin/login-history?status=failed", headers=auth(admin)).json()["data"]
    assert failed["pagination"]["total"] == 2
    mine = client.get(f"/api/admin/login-history?adminId={admin['_id']}", headers=auth(admin)).json()["data"]
    assert mine["pagination"]["total"] == 2

    stats = client.get("/api/admin/login-stats", headers=auth(admin)).json()["data"]
    assert stats["totalLogins"] == 3
    assert stats["successfulLogins"] == 1
    assert stats["failedLogins"] == 2
    assert stats["successRate"] == 33.3
    assert stats["uniqueAdmins"] == 1
    assert stats["lastLogin"] is not None


def test_seed_demo_logins(admin):
    service = AdminLoginService()
    assert service.seed_demo(admin, count=10) == 10
    stats = service.stats()
    assert stats["totalLogins"] == 10
    assert stats["failedLogins"] == 2


def test_repair_applications_endpoint(client, auth, mongo, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    student = factories.approved_student(admin)
    application = factories.apply(student, job)
    mongo[COLLECTIONS["applications"]].update_one({"_id": application["_id"]}, {"$unset": {"job": ""}})

    dry = client.post("/api/admin/repair-applications?dryRun=true", headers=auth(admin)).json()["data"]
    assert dry["dryRun"] is True
    assert dry["repaired"] == 1

    report = client.post("/api/admin/repair-applications", headers=auth(admin)).json()["data"]
    assert report["jobRefsFilled"] == 1
    assert mongo[COLLECTIONS["applications"]].find_one({"_id": application["_id"]})["job"] == job["_id"]
