# seva_app/routes/volunteer.py

"""
JSON endpoints for volunteers and dashboard statistics
"""

from http import HTTPStatus

from flask import current_app, jsonify, request

from seva_app.models import db
from seva_app.services.volunteer_service import (
    VolunteerAlreadyExists,
    VolunteerAlreadyRegistered,
    VolunteerCancelled,
    VolunteerNotFound,
    VolunteerServiceError,
    cancel_volunteer,
    create_volunteer,
    delete_volunteer,
    get_volunteer,
    get_volunteer_stats,
    register_volunteer,
    search_volunteers,
    update_volunteer,
)


def _service_error_response(exc):
    if isinstance(exc, VolunteerNotFound):
        status = HTTPStatus.NOT_FOUND
    elif isinstance(exc, (VolunteerCancelled, VolunteerAlreadyRegistered, VolunteerAlreadyExists)):
        status = HTTPStatus.CONFLICT
    else:
        status = HTTPStatus.BAD_REQUEST
    return jsonify({"error": str(exc)}), status


def _request_payload():
    """JSON object body, falling back to form fields"""
    data = request.get_json(silent=True)
    if data is None:
        return request.form.to_dict()
    if not isinstance(data, dict):
        raise VolunteerServiceError("Request body must be a JSON object")
    return data


def register_volunteer_routes(app):
    """Register volunteer and dashboard API routes"""

    @app.route("/api/volunteers", methods=["GET"])
    def api_list_volunteers():
        query = request.args.get("q", "").strip()
        volunteers = search_volunteers(query)
        current_app.logger.debug(f"Volunteer search '{query}' returned {len(volunteers)} result(s)")
        return jsonify({"volunteers": [volunteer.to_dict() for volunteer in volunteers], "count": len(volunteers)})

    @app.route("/api/volunteers/<sai_connect_id>", methods=["GET"])
    def api_get_volunteer(sai_connect_id):
        try:
            volunteer = get_volunteer(sai_connect_id)
        except VolunteerNotFound as exc:
            return _service_error_response(exc)
        return jsonify(volunteer.to_dict())

    @app.route("/api/dashboard/stats", methods=["GET"])
    def api_dashboard_stats():
        return jsonify(get_volunteer_stats())

    @app.route("/api/volunteers/<sai_connect_id>/cancel", methods=["POST"])
    def api_cancel_volunteer(sai_connect_id):
        try:
            volunteer = cancel_volunteer(sai_connect_id)
        except VolunteerServiceError as exc:
            return _service_error_response(exc)
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error cancelling volunteer {sai_connect_id}: {str(e)}")
            return jsonify({"error": "An error occurred while cancelling the volunteer"}), HTTPStatus.INTERNAL_SERVER_ERROR
        return jsonify(volunteer.to_dict())

    @app.route("/api/volunteers/<sai_connect_id>/register", methods=["POST"])
    def api_register_volunteer(sai_connect_id):
        try:
            data = _request_payload()
            registration = register_volunteer(
                sai_connect_id,
                data.get("age"),
                batch=data.get("batch"),
                service_location=data.get("service_location"),
            )
        except VolunteerServiceError as exc:
            return _service_error_response(exc)
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error registering volunteer {sai_connect_id}: {str(e)}")
            return (
                jsonify({"error": "An error occurred while registering the volunteer"}),
                HTTPStatus.INTERNAL_SERVER_ERROR,
            )
        return jsonify(registration.to_dict()), HTTPStatus.CREATED

    @app.route("/api/volunteers", methods=["POST"])
    def api_create_volunteer():
        try:
            volunteer = create_volunteer(_request_payload())
        except VolunteerServiceError as exc:
            return _service_error_response(exc)
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating volunteer: {str(e)}")
            return jsonify({"error": "An error occurred while creating the volunteer"}), HTTPStatus.INTERNAL_SERVER_ERROR
        return jsonify(volunteer.to_dict()), HTTPStatus.CREATED

    @app.route("/api/volunteers/<sai_connect_id>", methods=["PATCH"])
    def api_update_volunteer(sai_connect_id):
        try:
            volunteer = update_volunteer(sai_connect_id, _request_payload())
        except VolunteerServiceError as exc:
            return _service_error_response(exc)
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating volunteer {sai_connect_id}: {str(e)}")
            return jsonify({"error": "An error occurred while updating the volunteer"}), HTTPStatus.INTERNAL_SERVER_ERROR
        return jsonify(volunteer.to_dict())

    @app.route("/api/volunteers/<sai_connect_id>", methods=["DELETE"])
    def api_delete_volunteer(sai_connect_id):
        try:
            delete_volunteer(sai_connect_id)
        except VolunteerServiceError as exc:
            return _service_error_response(exc)
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error deleting volunteer {sai_connect_id}: {str(e)}")
            return jsonify({"error": "An error occurred while deleting the volunteer"}), HTTPStatus.INTERNAL_SERVER_ERROR
        return jsonify({"deleted": sai_connect_id})
