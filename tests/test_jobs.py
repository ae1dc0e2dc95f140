from datetime import timedelta

from studentjobs.core.config import get_settings
from studentjobs.db.documents import utcnow
from studentjobs.db.mongodb import COLLECTIONS
from tests import factories


def post_job(client, auth, employer, **overrides):
    return client.post("/api/jobs", json=factories.job_payload(**overrides), headers=auth(employer))


def test_unverified_employer_cannot_post(client, auth, employer):
    response = post_job(client, auth, employer)
    assert response.status_code == 403
    assert response.json()["code"] == "EMPLOYER_NOT_VERIFIED"


def test_post_copies_company_fields_and_waits_for_approval(client, auth, verified_employer):
    response = post_job(client, auth, verified_employer)
    assert response.status_code == 201
    job = response.json()["data"]
    assert job["approvalStatus"] == "pending"
    assert job["status"] == "active"
    assert job["companyName"] == verified_employer["companyName"]
    assert job["email"] == verified_employer["email"]
    assert job["employerId"] == str(verified_employer["_id"])
    assert job["workType"] == "Part-time"
    assert job["skillsRequired"] == ["Customer Service", "Coffee"]


def test_deadline_must_be_in_future(client, auth, verified_employer):
    past = (utcnow() - timedelta(days=1)).isoformat()
    assert post_job(client, auth, verified_employer, applicationDeadline=past).status_code == 400


def test_public_board_shows_only_active_approved(client, admin, verified_employer):
    approved = factories.create_job(verified_employer, admin, jobTitle="Approved Barista")
    factories.create_job(verified_employer, jobTitle="Pending Barista")

    body = client.get("/api/jobs").json()["data"]
    assert [j["_id"] for j in body["jobs"]] == [str(approved["_id"])]
    assert body["pagination"]["total"] == 1


def test_public_board_filters(client, admin, verified_employer):
    factories.create_job(verified_employer, admin, jobTitle="Data Entry Operator", location="Mumbai",
                         workType="Remote", skillsRequired=["Excel"])
    factories.create_job(verified_employer, admin, jobTitle="Weekend Barista", location="Pune")

    def titles(query):
        return [j["jobTitle"] for j in client.get(f"/api/jobs?{query}").json()["data"]["jobs"]]

    assert titles("search=barista") == ["Weekend Barista"]
    assert titles("location=mumbai") == ["Data Entry Operator"]
    assert titles("workType=Remote") == ["Data Entry Operator"]
    assert titles("skill=excel") == ["Data Entry Operator"]


def test_overdue_jobs_expire_on_listing(client, mongo, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    mongo[COLLECTIONS["jobs"]].update_one(
        {"_id": job["_id"]}, {"$set": {"applicationDeadline": utcnow() - timedelta(hours=1)}}
    )
    assert client.get("/api/jobs").json()["data"]["jobs"] == []
    assert mongo[COLLECTIONS["jobs"]].find_one({"_id": job["_id"]})["status"] == "expired"


def test_pending_job_visible_only_to_owner_and_admin(client, auth, admin, verified_employer, student):
    job = factories.create_job(verified_employer)
    url = f"/api/jobs/{job['_id']}"
    assert client.get(url).status_code == 404
    assert client.get(url, headers=auth(student)).status_code == 404
    assert client.get(url, headers=auth(verified_employer)).status_code == 200
    assert client.get(url, headers=auth(admin)).status_code == 200
    assert client.get("/api/jobs/not-an-id").status_code == 400


def test_editing_approved_job_sends_it_back_to_review(client, auth, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    url = f"/api/jobs/{job['_id']}"

    response = client.put(url, json={"highlighted": True}, headers=auth(verified_employer))
    assert response.json()["data"]["approvalStatus"] == "approved"

    response = client.put(url, json={"salaryRange": "300-400/hour"}, headers=auth(verified_employer))
    assert response.status_code == 200
    assert response.json()["data"]["salaryRange"] == "300-400/hour"
    assert response.json()["data"]["approvalStatus"] == "pending"


def test_only_owner_can_edit(client, auth, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    other = factories.verified_employer(admin)
    response = client.put(f"/api/jobs/{job['_id']}", json={"location": "Goa"}, headers=auth(other))
    assert response.status_code == 403


def test_status_changes_and_my_jobs(client, auth, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    response = client.patch(f"/api/jobs/{job['_id']}/status", json={"status": "paused"},
                            headers=auth(verified_employer))
    assert response.json()["data"]["status"] == "paused"

    mine = client.get("/api/jobs/employer/my-jobs?status=paused", headers=auth(verified_employer)).json()["data"]
    assert [j["_id"] for j in mine] == [str(job["_id"])]


def test_admin_review_and_stats(client, auth, admin, verified_employer):
    job = factories.create_job(verified_employer)
    url = f"/api/admin/jobs/{job['_id']}/review"
    assert client.put(url, json={"action": "reject"}, headers=auth(admin)).status_code == 400

    response = client.put(url, json={"action": "reject", "reason": "Salary missing"}, headers=auth(admin))
    assert response.json()["data"]["approvalStatus"] == "rejected"
    assert response.json()["data"]["rejectionReason"] == "Salary missing"

    response = client.put(url, json={"action": "approve"}, headers=auth(admin))
    assert response.json()["data"]["approvalStatus"] == "approved"
    assert response.json()["data"]["rejectionReason"] is None

    stats = client.get("/api/jobs/stats/overview", headers=auth(admin)).json()["data"]
    assert stats["total"] == 1
    assert stats["byStatus"]["active"] == 1
    assert stats["byApprovalStatus"]["approved"] == 1

    pending = client.get("/api/admin/jobs?approvalStatus=pending", headers=auth(admin)).json()["data"]
    assert pending["jobs"] == []


def test_delete_refused_with_open_applications(client, auth, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    student = factories.approved_student(admin)
    factories.apply(student, job)

    response = client.delete(f"/api/jobs/{job['_id']}", headers=auth(verified_employer))
    assert response.status_code == 409

    lonely = factories.create_job(verified_employer, admin, jobTitle="Night Shift Helper")
    assert client.delete(f"/api/jobs/{lonely['_id']}", headers=auth(admin)).status_code == 200


def test_auto_approve_setting(client, auth, verified_employer, monkeypatch):
    monkeypatch.setattr(get_settings(), "auto_approve_jobs", True)
    job = post_job(client, auth, verified_employer).json()["data"]
    assert job["approvalStatus"] == "approved"


def test_job_without_deadline_can_be_reactivated(client, auth, mongo, admin, verified_employer):
    job = factories.create_job(verified_employer, admin)
    mongo[COLLECTIONS["jobs"]].update_one(
        {"_id": job["_id"]}, {"$unset": {"applicationDeadline": ""}, "$set": {"status": "paused"}}
    )
    response = client.patch(f"/api/jobs/{job['_id']}/status", json={"status": "active"},
                            headers=auth(verified_employer))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "active"
