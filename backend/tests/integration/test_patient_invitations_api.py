"""
Integration tests for the patient invitation API.
"""

from models import PatientAssignment, PatientInvitation
from tests.utils import add_staff, auth_headers, create_practice_with_admin, create_user


def _invite(client, practice, sender, email="pat@example.com"):
    return client.post(
        "/api/patient-invitations",
        headers=auth_headers(sender),
        json={"email": email, "practiceId": practice.id},
    )


class TestPatientInvitationFlow:

    def test_staff_member_invites_and_patient_accepts(self, client, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        nurse = create_user(db_session, "nurse@example.com")
        add_staff(db_session, nurse, practice)
        patient = create_user(db_session, "pat@example.com", role="patient")

        sent = _invite(client, practice, nurse)
        assert sent.status_code == 200
        assert sent.json()["email_sent"] is False
        assert "note" in sent.json()
        token = db_session.query(PatientInvitation).one().invitation_token

        details = client.get(f"/api/patient-invitations/{token}", headers=auth_headers(patient))
        assert details.json()["email_matches"] is True

        accepted = client.post(f"/api/patient-invitations/{token}/accept", headers=auth_headers(patient))
        assert accepted.status_code == 200
        assert accepted.json()["role"] == "patient"
        assignment = db_session.query(PatientAssignment).one()
        assert (assignment.patient_id, assignment.practice_id) == (patient.id, practice.id)

        again = client.post(f"/api/patient-invitations/{token}/accept", headers=auth_headers(patient))
        assert again.status_code == 409

    def test_outsider_cannot_invite_patients(self, client, db_session):
        practice, _, _ = create_practice_with_admin(db_session)
        outsider = create_user(db_session, "outsider@example.com")

        response = _invite(client, practice, outsider)

        assert response.status_code == 403
        assert db_session.query(PatientInvitation).count() == 0

    def test_doctor_account_cannot_accept(self, client, db_session):
        practice, owner, _ = create_practice_with_admin(db_session)
        doctor = create_user(db_session, "pat@example.com", role="doctor")
        _invite(client, practice, owner)
        token = db_session.query(PatientInvitation).one().invitation_token

        response = client.post(f"/api/patient-invitations/{token}/accept", headers=auth_headers(doctor))

        assert response.status_code == 403
        assert response.json()["code"] == "not_patient"
