"""JSON API for the MediChannel booking service.

Flask server with endpoints for:
- Login, signup and logout (session cookie)
- Doctor search and doctor schedules
- Booking, listing and cancelling appointments
- Administrator dashboard

Run with: python -m medichannel.api
"""
from dataclasses import asdict
from datetime import date
from functools import wraps

from flask import Flask, current_app, g, jsonify, request, session
from flask_cors import CORS
from pydantic import ValidationError

from medichannel import config
from medichannel.backend import create_backend, is_mock
from medichannel.booking import (
    BookingFlow,
    filter_doctors,
    with_doctor_defaults,
)
from medichannel.config import Settings, load_settings
from medichannel.dashboard import load_dashboard
from medichannel.data_access import DataAccess
from medichannel.errors import (
    InvalidSlotError,
    InvalidStatusTransitionError,
    InvalidTransitionError,
    PersistenceError,
    SlotUnavailableError,
)
from medichannel.history import load_history
from medichannel.logging_config import (
    RequestIDMiddleware,
    bind_request_context,
    clear_request_context,
    generate_request_id,
    get_logger,
    setup_structured_logging,
)
from medichannel.models import AppointmentStatus, Role
from medichannel.roles import view_for
from medichannel.schedule import ScheduleManager
from medichannel.session import EMAIL_TAKEN_MESSAGE, SIGNUP_FAILED_MESSAGE, AuthSession
from medichannel.times import normalize_time_label
from medichannel.validation import SignupForm

logger = get_logger(__name__)

SIGNUP_FIELDS = (
    "name", "email", "password", "confirm_password", "role",
    "specialization", "hospital", "consultation_fee", "experience",
    "phone", "date_of_birth", "address",
)


def error_response(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def parse_date(raw):
    """Parse YYYY-MM-DD; raises InvalidSlotError on anything else."""
    try:
        return date.fromisoformat(raw or "")
    except (TypeError, ValueError):
        raise InvalidSlotError("Invalid date format. Use YYYY-MM-DD") from None


def get_data_access() -> DataAccess:
    return current_app.config["DATA_ACCESS"]


def auth() -> AuthSession:
    """Per-request auth session, restored from the cookie on first use."""
    if "auth" not in g:
        g.auth = AuthSession(get_data_access())
        g.auth.restore(session.get("user_id"))
    return g.auth


def login_required(*roles: Role):
    """Reject anonymous requests (401) and, if roles are given, other roles (403)."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user = auth().current_user
            if user is None:
                return error_response("Authentication required", 401)
            if roles and user.role not in roles:
                return error_response("Not allowed for this account type", 403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


def redact_patients(schedule: dict) -> dict:
    for slot in schedule["time_slots"]:
        slot["patient_id"] = None
        slot["patient_name"] = None
    return schedule


def create_app(data_access: DataAccess = None, settings: Settings = None) -> Flask:
    """
    Build the Flask application.

    Args:
        data_access: Data-access layer (default: built from settings, which
            means the mock store when no backend is configured)
        settings: Deployment settings (default: read from environment)

    Returns:
        Configured Flask app
    """
    settings = settings or load_settings()
    setup_structured_logging(settings.log_level)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["DATA_ACCESS"] = data_access or DataAccess(create_backend(settings))
    CORS(app, supports_credentials=True)
    app.wsgi_app = RequestIDMiddleware(app.wsgi_app)

    @app.before_request
    def bind_context():
        request_id = request.environ.get("REQUEST_ID") or generate_request_id()
        bind_request_context(request_id, session.get("user_id"))

    @app.teardown_request
    def unbind_context(exc=None):
        clear_request_context()

    register_error_handlers(app)
    register_routes(app)
    return app


def register_error_handlers(app: Flask):
    # Flask picks the handler of the most specific class in the exception's MRO

    @app.errorhandler(InvalidSlotError)
    def handle_invalid_slot(e):
        return error_response(str(e), 400)

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return error_response("Invalid request data", 400)

    @app.errorhandler(SlotUnavailableError)
    def handle_slot_unavailable(e):
        return error_response(str(e), 409)

    @app.errorhandler(InvalidStatusTransitionError)
    def handle_status_transition(e):
        return error_response(str(e), 409)

    @app.errorhandler(InvalidTransitionError)
    def handle_workflow_transition(e):
        return error_response(str(e), 409)

    @app.errorhandler(PersistenceError)
    def handle_persistence(e):
        logger.error("persistence_error", error=str(e), status_code=e.status_code)
        return error_response("Service temporarily unavailable. Please try again.", 503)


def register_routes(app: Flask):

    @app.route('/health', methods=['GET'])
    def health():
        """GET /health - Health check."""
        return jsonify({
            "status": "healthy",
            "service": config.APP_NAME,
            "backend": "mock" if is_mock(get_data_access().backend) else "rest",
        })

    # Auth

    @app.route('/auth/login', methods=['POST'])
    def login():
        """POST /auth/login - {"email", "password", "role"}."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not all(
            isinstance(data.get(field), str) and data[field]
            for field in ("email", "password", "role")
        ):
            return error_response("Please fill in all fields", 400)

        session_ = auth()
        if not session_.login(data["email"], data["password"], data["role"]):
            return error_response("Invalid email, password or account type", 401)

        session["user_id"] = session_.current_user.id
        return jsonify({
            "success": True,
            "user": session_.current_user.model_dump(mode="json"),
            "view": view_for(session_.current_user.role).to_dict(),
        })

    @app.route('/auth/signup', methods=['POST'])
    def signup():
        """POST /auth/signup - signup form fields; logs the new account in."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        fields = {name: str(data.get(name) or "") for name in SIGNUP_FIELDS}
        fields["role"] = fields["role"] or Role.PATIENT.value
        form = SignupForm(**fields)

        result = auth().signup(form)
        if not result.success:
            if result.message == EMAIL_TAKEN_MESSAGE:
                return error_response(result.message, 409)
            if result.message == SIGNUP_FAILED_MESSAGE:
                return error_response(result.message, 503)
            return error_response(result.message, 400)

        session["user_id"] = result.user.id
        return jsonify({
            "success": True,
            "user": result.user.model_dump(mode="json"),
            "view": view_for(result.user.role).to_dict(),
        }), 201

    @app.route('/auth/logout', methods=['POST'])
    def logout():
        auth().logout()
        session.clear()
        return jsonify({"success": True})

    @app.route('/auth/me', methods=['GET'])
    @login_required()
    def me():
        return jsonify({"success": True, "user": auth().current_user.model_dump(mode="json")})

    @app.route('/menu', methods=['GET'])
    @login_required()
    def menu():
        """GET /menu - Sidebar entries and default tab for the logged-in role."""
        return jsonify({"success": True, **view_for(auth().current_user.role).to_dict()})

    # Doctors

    @app.route('/doctors', methods=['GET'])
    @login_required()
    def list_doctors():
        """GET /doctors?search=...&specialization=... - Doctor search."""
        doctors = [with_doctor_defaults(d) for d in get_data_access().get_doctors()]
        matches = filter_doctors(
            doctors,
            request.args.get("search", ""),
            request.args.get("specialization", config.ALL_SPECIALIZATIONS),
        )
        return jsonify({
            "success": True,
            "doctors": [d.model_dump(mode="json") for d in matches],
            "specializations": config.SPECIALIZATIONS,
        })

    @app.route('/doctors/<doctor_id>', methods=['GET'])
    @login_required()
    def get_doctor(doctor_id):
        doctor = get_data_access().get_user_by_id(doctor_id)
        if doctor is None or doctor.role != Role.DOCTOR:
            return error_response(f"Doctor '{doctor_id}' not found", 404)
        return jsonify({"success": True, "doctor": with_doctor_defaults(doctor).model_dump(mode="json")})

    @app.route('/doctors/<doctor_id>/schedule', methods=['GET'])
    @login_required()
    def get_schedule(doctor_id):
        """GET /doctors/<id>/schedule?date=YYYY-MM-DD - Slots with booked flags."""
        schedule_date = parse_date(request.args.get("date") or date.today().isoformat())

        doctor = get_data_access().get_user_by_id(doctor_id)
        if doctor is None or doctor.role != Role.DOCTOR:
            return error_response(f"Doctor '{doctor_id}' not found", 404)

        schedule = ScheduleManager(get_data_access(), doctor_id).load(schedule_date)
        body = schedule.model_dump(mode="json")

        user = auth().current_user
        if user.role != Role.ADMIN and user.id != doctor_id:
            body = redact_patients(body)

        return jsonify({"success": True, "schedule": body})

    @app.route('/doctors/<doctor_id>/schedule/<schedule_date>/slots/<time>', methods=['PATCH'])
    @login_required(Role.DOCTOR)
    def toggle_slot(doctor_id, schedule_date, time):
        """PATCH /doctors/<id>/schedule/<date>/slots/<time> - Flip availability.

        Only the doctor who owns the schedule may change it.
        """
        if auth().current_user.id != doctor_id:
            return error_response("Doctors can only change their own schedule", 403)

        manager = ScheduleManager(get_data_access(), doctor_id)
        manager.load(parse_date(schedule_date))
        committed = manager.toggle_slot(normalize_time_label(time))

        body = {"success": committed, "schedule": manager.schedule.model_dump(mode="json")}
        if not committed:
            body["error"] = "Failed to update schedule. Changes were reverted."
            return jsonify(body), 503
        return jsonify(body)

    # Appointments

    @app.route('/appointments', methods=['POST'])
    @login_required(Role.PATIENT)
    def create_appointment():
        """POST /appointments - Book a slot.

        Expected JSON body:
        {
            "doctor_id": "11111111-1111-1111-1111-111111111111",
            "date": "2025-01-15",
            "time": "9:00 AM",
            "symptoms": "Chest pain"
        }
        """
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return error_response("Request body is required", 400)

        for field in ("doctor_id", "date", "time"):
            if not isinstance(data.get(field), str) or not data[field].strip():
                return error_response(f"Missing or invalid field: {field}", 400)

        symptoms = data.get("symptoms") or ""
        if not isinstance(symptoms, str):
            return error_response("Symptoms must be text", 400)

        flow = BookingFlow(get_data_access(), auth().current_user)
        if flow.select_doctor(data["doctor_id"]) is None:
            return error_response(f"Doctor '{data['doctor_id']}' not found", 404)

        flow.select_slot(parse_date(data["date"]), data["time"])
        flow.describe_symptoms(symptoms)
        outcome = flow.submit()

        if not outcome.success:
            status = 409 if isinstance(outcome.error, SlotUnavailableError) else 503
            return error_response(outcome.message, status)

        return jsonify({
            "success": True,
            "message": outcome.message,
            "appointment": outcome.appointment.model_dump(mode="json"),
        }), 201

    @app.route('/appointments', methods=['GET'])
    @login_required()
    def list_appointments():
        """GET /appointments - Upcoming and past appointments of the current user."""
        history = load_history(get_data_access(), auth().current_user)
        return jsonify({
            "success": True,
            "upcoming": [apt.model_dump(mode="json") for apt in history.upcoming],
            "past": [apt.model_dump(mode="json") for apt in history.past],
        })

    @app.route('/appointments/<appointment_id>', methods=['PATCH'])
    @login_required()
    def update_appointment(appointment_id):
        """PATCH /appointments/<id> - Change status (cancelling never deletes).

        Patients may only cancel their own appointments; doctors may update
        appointments booked with them; admins may update any.
        """
        data = request.get_json(silent=True) or {}
        try:
            status = AppointmentStatus(data.get("status"))
        except ValueError:
            return error_response("Invalid status", 400)

        appointment = get_data_access().get_appointment(appointment_id)
        if appointment is None:
            return error_response(f"Appointment '{appointment_id}' not found", 404)

        user = auth().current_user
        if user.role == Role.PATIENT:
            if appointment.patient_id != user.id or status != AppointmentStatus.CANCELLED:
                return error_response("Not allowed to change this appointment", 403)
        elif user.role == Role.DOCTOR and appointment.doctor_id != user.id:
            return error_response("Not allowed to change this appointment", 403)

        updated = get_data_access().update_appointment_status(appointment_id, status)
        if updated is None:
            return error_response(f"Appointment '{appointment_id}' not found", 404)

        return jsonify({"success": True, "appointment": updated.model_dump(mode="json")})

    # Admin

    @app.route('/admin/dashboard', methods=['GET'])
    @login_required(Role.ADMIN)
    def dashboard():
        stats = load_dashboard(get_data_access())
        return jsonify({"success": True, "stats": asdict(stats)})


def print_startup_info(app: Flask):
    """Print server startup information."""
    backend = "mock (demo accounts, password: %s)" % config.DEMO_PASSWORD \
        if is_mock(app.config["DATA_ACCESS"].backend) else "hosted REST"

    print("=" * 70)
    print(f"{config.APP_NAME} API")
    print("=" * 70)
    print(f"\nBackend: {backend}")
    print("\nEndpoints:")
    print("   GET   /health                                   - Health check")
    print("   POST  /auth/login | /auth/signup | /auth/logout - Session")
    print("   GET   /auth/me, /menu                           - Current user, navigation")
    print("   GET   /doctors?search=&specialization=          - Search doctors")
    print("   GET   /doctors/<id>/schedule?date=YYYY-MM-DD    - Doctor schedule")
    print("   PATCH /doctors/<id>/schedule/<date>/slots/<t>   - Toggle slot")
    print("   POST  /appointments                             - Book appointment")
    print("   GET   /appointments                             - Upcoming and past")
    print("   PATCH /appointments/<id>                        - Change status")
    print("   GET   /admin/dashboard                          - Statistics")
    print("=" * 70)


if __name__ == '__main__':
    application = create_app()
    print_startup_info(application)
    application.run(
        debug=False,
        port=config.API_PORT,
        host='0.0.0.0'
    )
