"""
Local Development Server for Safe Passage

Run this to test a client locally:
1. python backend/dev_server.py
2. Send fixes to http://localhost:5000/fixes and poll /notifications

Besides the stateless routes of the Lambda handler, this server keeps one
live vessel session in memory: GPS fixes, anchor alarm and trip tracking.
"""

from flask import Flask, request, jsonify
from flask_cors import CORS
from datetime import datetime, timezone
import logging
import os

from anchor_alarm import Active, Drafting
from config import LOGGING_CONFIG, STORAGE_CONFIG
from errors import ConfigurationError, PassageError
from lambda_function import (
    assess_route, error_status, parse_coordinates, parse_route, parse_time, rank_shelter, wind_grid,
)
from models import TotalTripStats, TrackedPosition, TripSummary
from notifications import CollectingNotificationSink
from route_planner import WindGridSampler
from storage import InMemoryPreferenceStore, JsonPreferenceStore
from vessel_session import VesselSession
from weather_fetcher import WeatherAcquisition

logger = logging.getLogger(__name__)


def configure_logging(log_file_path=None):
    """Set up logging - both to file and console"""
    log_format = LOGGING_CONFIG['format']
    if log_file_path is None:
        # Use absolute path relative to project root (parent of backend/)
        script_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.dirname(script_dir)
        log_file_path = os.path.join(project_root, LOGGING_CONFIG['log_file'])

    # Clear any existing handlers to avoid conflicts
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.FileHandler(log_file_path, mode='a', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(log_format))

    root_logger.setLevel(LOGGING_CONFIG['level'])
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Logging initialized - log file: {log_file_path}")


def parse_fix(data) -> TrackedPosition:
    coordinate = parse_coordinates(data, "fix")
    try:
        accuracy = float(data.get("accuracy", 0))
        speed = float(data.get("speed_kmh", 0))
    except (TypeError, ValueError):
        raise ConfigurationError("fix accuracy and speed_kmh must be numbers")
    timestamp = parse_time(data.get("timestamp")) if data.get("timestamp") else datetime.now(timezone.utc)
    return TrackedPosition(coordinate=coordinate, timestamp=timestamp,
                           speed_kmh=speed, horizontal_accuracy_m=accuracy)


def anchor_to_dict(session: VesselSession) -> dict:
    state = session.anchor.state
    result = {"state": type(state).__name__.lower(), "lastRadiusM": session.anchor.last_radius_m}
    if isinstance(state, (Drafting, Active)):
        result["center"] = {"lat": state.center.lat, "lng": state.center.lng}
        result["radiusM"] = state.radius_m
    if isinstance(state, Active):
        result["consecutiveOutside"] = state.consecutive_outside
        result["triggered"] = state.triggered
        result["currentDriftM"] = round(state.current_drift_m, 1)
    return result


def trip_to_dict(session: VesselSession) -> dict:
    tracker = session.tracker
    if not tracker.is_trip_active:
        return {"active": False, "currentSpeedKmh": tracker.current_speed_kmh}
    stats = tracker.trip_stats()
    target = tracker.progress.target
    return {
        "active": True,
        "distanceKm": round(stats.distance_km, 3),
        "durationS": round(stats.duration_s),
        "currentSpeedKmh": stats.current_speed_kmh,
        "maxSpeedKmh": stats.max_speed_kmh,
        "avgSpeedKmh": round(stats.avg_speed_kmh, 1),
        "fixCount": stats.fix_count,
        "nextWaypoint": target.display_name if target else None,
        "distanceToNextM": tracker.distance_to_next_waypoint_m,
        "bearingToNext": tracker.bearing_to_next_waypoint,
        "arrived": tracker.progress.arrived,
        "paused": stats.paused,
    }


def summary_to_dict(summary: TripSummary) -> dict:
    return {
        "id": summary.id,
        "startTime": summary.start_time.isoformat(),
        "endTime": summary.end_time.isoformat(),
        "durationS": round(summary.duration_s),
        "distanceKm": round(summary.distance_km, 3),
        "avgSpeedKmh": round(summary.avg_speed_kmh, 1),
        "maxSpeedKmh": summary.max_speed_kmh,
        "fuelUsedL": round(summary.fuel_used_l, 2),
        "fuelCost": round(summary.fuel_cost, 2),
    }


def totals_to_dict(totals: TotalTripStats) -> dict:
    return {
        "tripCount": totals.trip_count,
        "totalDistanceKm": round(totals.total_distance_km, 3),
        "totalDurationS": round(totals.total_duration_s),
        "totalFuelL": round(totals.total_fuel_l, 2),
        "totalCost": round(totals.total_cost, 2),
    }


def create_app(session: VesselSession = None, acquisition: WeatherAcquisition = None,
               sink: CollectingNotificationSink = None, preferences_file: str = None) -> Flask:
    """
    The session must report to the same sink that /notifications drains.

    Without a session, one is built whose anchor radius preference lives in
    preferences_file (or PASSAGE_PREFERENCES_FILE), in memory if neither is set.
    """
    sink = sink or CollectingNotificationSink()
    if session is None:
        path = preferences_file or STORAGE_CONFIG['preferences_file']
        preferences = JsonPreferenceStore(path) if path else InMemoryPreferenceStore()
        session = VesselSession(sink, preferences=preferences)
    acquisition = acquisition or WeatherAcquisition()
    wind_sampler = WindGridSampler(acquisition)

    app = Flask(__name__)
    CORS(app)  # Enable CORS for local development
    app.config['SESSION'] = session
    app.config['SINK'] = sink

    def body():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ConfigurationError("Request body must be a JSON object")
        return data

    @app.errorhandler(PassageError)
    def handle_passage_error(error):
        status = error_status(error)
        logger.warning(f"[{status}] {request.path}: {error}")
        return jsonify({"error": str(error)}), status

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "ok"})

    @app.route('/assess-route', methods=['POST'])
    def assess_route_endpoint():
        logger.info("=== Assessing Route ===")
        return jsonify(assess_route(body(), acquisition))

    @app.route('/shelter', methods=['POST'])
    def shelter_endpoint():
        return jsonify(rank_shelter(body(), acquisition))

    @app.route('/wind-grid', methods=['POST'])
    def wind_grid_endpoint():
        return jsonify(wind_grid(body(), wind_sampler))

    @app.route('/fixes', methods=['POST'])
    def fixes():
        data = body()
        raw_fixes = data.get("fixes", [data])
        if not isinstance(raw_fixes, list):
            raise ConfigurationError("fixes must be a list")
        accepted = [session.handle_fix(parse_fix(raw)) for raw in raw_fixes]
        return jsonify({
            "accepted": accepted,
            "anchor": anchor_to_dict(session),
            "trip": trip_to_dict(session),
        })

    @app.route('/anchor', methods=['GET'])
    def anchor_state():
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/draft', methods=['POST'])
    def anchor_draft():
        session.anchor.start_drafting(parse_coordinates(body(), "center"))
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/center', methods=['POST'])
    def anchor_center():
        session.anchor.update_center(parse_coordinates(body(), "center"))
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/radius', methods=['POST'])
    def anchor_radius():
        try:
            radius = float(body()["radius_m"])
        except (KeyError, TypeError, ValueError):
            raise ConfigurationError("radius_m must be a number")
        session.anchor.update_radius(radius)
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/activate', methods=['POST'])
    def anchor_activate():
        session.anchor.activate_alarm()
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/deactivate', methods=['POST'])
    def anchor_deactivate():
        session.anchor.deactivate_alarm()
        return jsonify(anchor_to_dict(session))

    @app.route('/anchor/cancel', methods=['POST'])
    def anchor_cancel():
        session.anchor.cancel_drafting()
        return jsonify(anchor_to_dict(session))

    @app.route('/trip', methods=['GET'])
    def trip_state():
        return jsonify(trip_to_dict(session))

    @app.route('/trip/start', methods=['POST'])
    def trip_start():
        data = request.get_json(silent=True) or {}
        waypoints = parse_route(data).sorted_waypoints if data.get("waypoints") else []
        session.start_trip(waypoints)
        return jsonify(trip_to_dict(session))

    @app.route('/trip/pause', methods=['POST'])
    def trip_pause():
        session.pause_trip()
        return jsonify(trip_to_dict(session))

    @app.route('/trip/resume', methods=['POST'])
    def trip_resume():
        session.resume_trip()
        return jsonify(trip_to_dict(session))

    @app.route('/trip/stop', methods=['POST'])
    def trip_stop():
        return jsonify(summary_to_dict(session.stop_trip()))

    @app.route('/trips/stats', methods=['GET'])
    def trips_stats():
        return jsonify(totals_to_dict(session.total_stats()))

    @app.route('/notifications', methods=['GET'])
    def notifications():
        return jsonify([
            {"kind": n.kind, "message": n.message, "sentAt": n.sent_at.isoformat()}
            for n in sink.drain()
        ])

    return app


if __name__ == '__main__':
    configure_logging()
    logger.info("=" * 60)
    logger.info("Safe Passage - Development Server")
    logger.info("=" * 60)
    logger.info("Backend running at: http://localhost:5000")
    logger.info("=" * 60)
    create_app().run(debug=True, port=5000)
