"""
Tests for volunteer statistics, records, cancellation and registration rules
"""

from datetime import date

import pytest

from seva_app.models import RegisteredVolunteer, Volunteer, db
from seva_app.services.volunteer_service import (
    VolunteerAlreadyExists,
    VolunteerAlreadyRegistered,
    VolunteerCancelled,
    VolunteerNotFound,
    VolunteerServiceError,
    cancel_volunteer,
    create_volunteer,
    delete_volunteer,
    get_volunteer_stats,
    register_volunteer,
    search_volunteers,
    update_volunteer,
)


class TestVolunteerStats:
    def test_empty_database(self, app):
        assert get_volunteer_stats() == {"total_volunteers": 0, "coming": 0, "not_coming": 0, "registered": 0}

    def test_counts_by_status(self, sample_volunteers):
        """One cancelled and one registered out of three"""
        assert get_volunteer_stats() == {"total_volunteers": 3, "coming": 2, "not_coming": 1, "registered": 1}


class TestSearchVolunteers:
    def test_blank_query_returns_all_sorted_by_name(self, sample_volunteers):
        names = [volunteer.full_name for volunteer in search_volunteers("  ")]
        assert names == ["Asha Rao", "Meena Iyer", "Ravi Kumar"]

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("asha", ["100001"]),
            ("100002", ["100002"]),
            ("98765000", ["100001"]),
            ("PUNE", ["100001", "100003"]),
            ("nobody", []),
        ],
    )
    def test_matches_name_id_mobile_and_district(self, sample_volunteers, query, expected):
        assert [volunteer.sai_connect_id for volunteer in search_volunteers(query)] == expected

    def test_limit(self, sample_volunteers):
        assert len(search_volunteers(limit=2)) == 2


class TestCreateVolunteer:
    def test_create_with_typed_fields(self, app):
        volunteer = create_volunteer(
            {
                "sai_connect_id": " 200001 ",
                "full_name": "  Lakshmi Devi ",
                "age": "29",
                "mobile_number": "9876543210",
                "sevadal_training_certificate": "yes",
                "prashanti_arrival": "2024-11-20",
            }
        )

        assert volunteer.sai_connect_id == "200001"
        assert volunteer.full_name == "Lakshmi Devi"
        assert volunteer.age == 29
        assert volunteer.sevadal_training_certificate is True
        assert volunteer.prashanti_arrival == date(2024, 11, 20)
        assert volunteer.is_cancelled is False
        assert Volunteer.query.count() == 1

    def test_duplicate_connect_id(self, sample_volunteers):
        with pytest.raises(VolunteerAlreadyExists):
            create_volunteer({"sai_connect_id": "100001", "full_name": "Someone Else"})

    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"sai_connect_id": "12345", "full_name": "Asha"}, "6 digits"),
            ({"sai_connect_id": "200001"}, "Full name is required"),
            ({"sai_connect_id": "200001", "full_name": "   "}, "Full name is required"),
            ({"sai_connect_id": "200001", "full_name": "Asha", "mobile_number": "12345"}, "10 digits"),
            ({"sai_connect_id": "200001", "full_name": "Asha", "aadhar_number": "1234"}, "12 digits"),
            ({"sai_connect_id": "200001", "full_name": "Asha", "age": 12}, "Age must be between"),
            ({"sai_connect_id": "200001", "full_name": "Asha", "prashanti_arrival": "soon"}, "YYYY-MM-DD"),
            ({"sai_connect_id": "200001", "full_name": "Asha", "nickname": "A"}, "Unknown volunteer fields: nickname"),
        ],
    )
    def test_invalid_payload(self, app, payload, message):
        with pytest.raises(VolunteerServiceError, match=message):
            create_volunteer(payload)

        assert Volunteer.query.count() == 0


class TestUpdateVolunteer:
    def test_partial_update(self, sample_volunteers):
        volunteer = update_volunteer("100001", {"sss_district": "Mumbai", "age": 45})

        assert volunteer.sss_district == "Mumbai"
        assert volunteer.age == 45
        assert volunteer.full_name == "Asha Rao"

    def test_relationship_keys_are_ignored(self, sample_volunteers):
        """A record echoed back from a fetch carries its registration"""
        payload = {
            "sai_connect_id": "100002",
            "duty_point": "Gate 4",
            "registration": {"batch": "Batch Z"},
            "registered_volunteers": None,
            "status": "registered",
        }

        volunteer = update_volunteer("100002", payload)

        assert volunteer.duty_point == "Gate 4"
        assert volunteer.registration.batch == "Batch A"

    def test_connect_id_cannot_change(self, sample_volunteers):
        with pytest.raises(VolunteerServiceError, match="cannot be changed"):
            update_volunteer("100001", {"sai_connect_id": "100009"})

    def test_clearing_age(self, sample_volunteers):
        assert update_volunteer("100001", {"age": ""}).age is None

    def test_update_unknown(self, app):
        with pytest.raises(VolunteerNotFound):
            update_volunteer("999999", {"full_name": "Nobody"})


class TestDeleteVolunteer:
    def test_delete_removes_registration(self, sample_volunteers):
        delete_volunteer("100002")

        assert Volunteer.query.filter_by(sai_connect_id="100002").first() is None
        assert RegisteredVolunteer.query.count() == 0
        assert Volunteer.query.count() == 2

    def test_delete_unknown(self, app):
        with pytest.raises(VolunteerNotFound):
            delete_volunteer("999999")


class TestCancelVolunteer:
    def test_cancel_active_volunteer(self, sample_volunteers):
        volunteer = cancel_volunteer("100001")

        assert volunteer.is_cancelled is True
        assert volunteer.status == "cancelled"

    def test_cancel_removes_registration(self, sample_volunteers):
        cancel_volunteer("100002")

        assert RegisteredVolunteer.query.count() == 0
        assert db.session.get(Volunteer, sample_volunteers["registered"].id).is_cancelled is True

    def test_cancel_unknown_volunteer(self, app):
        with pytest.raises(VolunteerNotFound):
            cancel_volunteer("999999")


class TestRegisterVolunteer:
    def test_register_assigns_batch_and_updates_age(self, sample_volunteers):
        registration = register_volunteer("100001", "42", batch=" Batch B ", service_location="East Gate")

        assert registration.batch == "Batch B"
        assert registration.service_location == "East Gate"
        volunteer = Volunteer.query.filter_by(sai_connect_id="100001").one()
        assert volunteer.age == 42
        assert volunteer.status == "registered"

    @pytest.mark.parametrize("sai_connect_id", ["12345", "abcdef", "", None])
    def test_connect_id_must_be_six_digits(self, sample_volunteers, sai_connect_id):
        with pytest.raises(VolunteerServiceError, match="6 digits"):
            register_volunteer(sai_connect_id, 30)

    @pytest.mark.parametrize("age", [17, 101, "abc", None])
    def test_age_must_be_within_configured_bounds(self, sample_volunteers, age):
        with pytest.raises(VolunteerServiceError, match="Age must be between 18 and 100"):
            register_volunteer("100001", age)

    def test_configured_bounds_are_used(self, app, sample_volunteers):
        app.config["IMPORTER_AGE_MAX"] = 70

        with pytest.raises(VolunteerServiceError, match="between 18 and 70"):
            register_volunteer("100001", 75)

    def test_cancelled_volunteer_cannot_register(self, sample_volunteers):
        with pytest.raises(VolunteerCancelled):
            register_volunteer("100003", 30)

    def test_already_registered(self, sample_volunteers):
        with pytest.raises(VolunteerAlreadyRegistered):
            register_volunteer("100002", 30)

    def test_unknown_volunteer(self, sample_volunteers):
        with pytest.raises(VolunteerNotFound):
            register_volunteer("999999", 30)

    def test_non_string_batch_is_stored_as_text(self, sample_volunteers):
        registration = register_volunteer("100001", 30, batch=3, service_location=None)

        assert registration.batch == "3"
        assert registration.service_location is None
