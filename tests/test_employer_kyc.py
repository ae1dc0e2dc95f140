from tests import factories


def submit(client, auth, employer, **overrides):
    return client.post("/api/employer-kyc", json=factories.employer_kyc_payload(**overrides), headers=auth(employer))


def test_submit_normalizes_identifiers(client, auth, employer):
    response = submit(client, auth, employer, GSTNumber="27abcde1234f1z5", PAN="abcde1234f")
    assert response.status_code == 201
    kyc = response.json()["data"]
    assert kyc["GSTNumber"] == "27ABCDE1234F1Z5"
    assert kyc["PAN"] == "ABCDE1234F"
    assert kyc["status"] == "pending"
    assert kyc["documents"]["gstCertificateUrl"] == "https://files.studentjobs.com/gst.pdf"
    assert factories.reload(employer)["kycStatus"] == "pending"


def test_invalid_gst_and_document_url_are_rejected(client, auth, employer):
    assert submit(client, auth, employer, GSTNumber="12345").status_code == 422
    assert submit(client, auth, employer, documents={"panCardUrl": "not-a-url"}).status_code == 422


def test_students_cannot_submit(client, auth, student):
    assert submit(client, auth, student).status_code == 403


def test_approval_makes_employer_verified(client, auth, admin, employer):
    kyc_id = submit(client, auth, employer).json()["data"]["_id"]
    assert submit(client, auth, employer).status_code == 409

    response = client.patch(f"/api/employer-kyc/admin/{kyc_id}/approve", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["reviewedBy"] == str(admin["_id"])

    user = factories.reload(employer)
    assert user["isVerified"] is True
    assert user["kycStatus"] == "approved"
    assert user["kycVerifiedAt"] is not None

    status = client.get(f"/api/employer-kyc/{employer['_id']}/status", headers=auth(employer)).json()["data"]
    assert status["status"]["status"] == "approved"
    assert status["kyc"]["companyName"] == "Chai Point"


def test_rejection_then_resubmission(client, auth, admin, employer):
    kyc_id = submit(client, auth, employer).json()["data"]["_id"]
    response = client.patch(
        f"/api/employer-kyc/admin/{kyc_id}/reject", json={"reason": "GST certificate expired"}, headers=auth(admin)
    )
    assert response.status_code == 200
    user = factories.reload(employer)
    assert user["kycStatus"] == "rejected"
    assert user["isVerified"] is False
    assert user["kycRejectedAt"] is not None

    response = submit(client, auth, employer, city="Mumbai")
    assert response.status_code == 201
    assert response.json()["data"]["rejectionReason"] is None
    assert factories.reload(employer)["kycStatus"] == "pending"


def test_status_is_private_to_owner_and_admin(client, auth, admin, employer):
    other = factories.create_employer()
    url = f"/api/employer-kyc/{employer['_id']}/status"
    assert client.get(url, headers=auth(other)).status_code == 403
    body = client.get(url, headers=auth(admin)).json()["data"]
    assert body["status"]["status"] == "not_submitted"
    assert body["kyc"] is None


def test_admin_list_by_status(client, auth, admin, employer):
    submit(client, auth, employer)
    factories.verified_employer(admin)
    pending = client.get("/api/employer-kyc/admin/all?status=pending", headers=auth(admin)).json()["data"]
    assert [k["employerId"] for k in pending] == [str(employer["_id"])]
    everything = client.get("/api/employer-kyc/admin/all", headers=auth(admin)).json()["data"]
    assert len(everything) == 2
