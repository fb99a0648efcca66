import logging

from flask import abort, current_app, jsonify, request

from spread_pickem import limiter
from spread_pickem.errors import MalformedSubmission
from spread_pickem.routes.api import bp
from spread_pickem.services.bowl_pick_ledger import BowlPickLedger
from spread_pickem.services.game_catalog import GameCatalog, parse_whole_number
from spread_pickem.services.identity import IdentityResolver
from spread_pickem.services.leaderboard import LeaderboardAggregator
from spread_pickem.services.pick_ledger import PickLedger, SubmissionMode

logger = logging.getLogger(__name__)

catalog = GameCatalog()
pick_ledger = PickLedger()
bowl_pick_ledger = BowlPickLedger(catalog=catalog)
leaderboard = LeaderboardAggregator(catalog)
identity = IdentityResolver()


# Helpers


def _current_user():
    """Resolve the caller from the headers set by the upstream auth layer"""
    external_id = request.headers.get("X-User-Id", "").strip()
    email = request.headers.get("X-User-Email", "").strip()
    if not external_id or not email:
        abort(401)

    user, _ = identity.get_or_create(
        external_id, email, request.headers.get("X-User-Name", "").strip() or None
    )
    if not user.is_active:
        abort(403)
    return user


def _is_admin(user):
    return user.email.lower() in current_app.config.get("ADMIN_EMAILS", [])


def _require_admin():
    user = _current_user()
    if not _is_admin(user):
        logger.warning(f"Non-admin user {user.id} attempted an admin action on {request.path}")
        abort(403)
    return user


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return data


def _list_field(data, name):
    items = data.get(name)
    if not isinstance(items, list):
        abort(400, description=f"'{name}' must be a list")
    return items


def _submission_mode(data, default):
    raw = data.get("mode")
    if raw is None:
        return default
    try:
        return SubmissionMode(str(raw).lower())
    except ValueError:
        abort(400, description="mode must be 'replace' or 'merge'")


def _submission_response(result):
    return jsonify(result), (200 if result["success"] else 400)


@bp.errorhandler(MalformedSubmission)
def malformed_submission(error):
    logger.warning(f"Malformed submission on {request.path}: {error}")
    return jsonify({"success": False, "error": str(error)}), 400


# Identity


@bp.route("/me")
def me():
    user = _current_user()
    data = user.to_dict()
    data["is_admin"] = _is_admin(user)
    return jsonify(data)


# Games


@bp.route("/games/<int:year>/<int:week>")
def week_games(year, week):
    games = catalog.get_slate(year, week)
    return jsonify({"year": year, "week": week, "games": [game.to_dict() for game in games]})


@bp.route("/weeks/<int:year>")
def available_weeks(year):
    return jsonify({"year": year, "weeks": catalog.get_available_weeks(year)})


@bp.route("/games/<int:year>/<int:week>/sync", methods=["POST"])
def sync_week_games(year, week):
    _require_admin()
    synced = catalog.sync_slate(year, week, _list_field(_json_body(), "games"))
    return jsonify({"success": True, "synced": synced})


@bp.route("/bowl-games/<int:year>")
def bowl_games(year):
    games = catalog.get_bowl_slate(year)
    return jsonify({"year": year, "games": [game.to_dict() for game in games]})


@bp.route("/bowl-games/<int:year>/sync", methods=["POST"])
def sync_bowl_games(year):
    _require_admin()
    synced = catalog.sync_bowl_slate(year, _list_field(_json_body(), "games"))
    return jsonify({"success": True, "synced": synced})


# Picks


@bp.route("/picks/<int:year>/<int:week>", methods=["POST"])
@limiter.limit("60 per minute")
def submit_picks(year, week):
    user = _current_user()
    data = _json_body()
    result = pick_ledger.submit(
        user.id,
        year,
        week,
        _list_field(data, "picks"),
        mode=_submission_mode(data, SubmissionMode.REPLACE),
    )
    return _submission_response(result)


@bp.route("/picks/<int:year>/<int:week>")
def week_picks(year, week):
    user = _current_user()
    picks = pick_ledger.get_for_period(user.id, year, week)
    return jsonify([pick.to_dict() for pick in picks])


@bp.route("/picks/<int:year>")
def season_picks(year):
    user = _current_user()
    picks = pick_ledger.get_for_season(user.id, year)
    return jsonify([pick.to_dict() for pick in picks])


@bp.route("/bowl-picks/<int:year>", methods=["POST"])
@limiter.limit("60 per minute")
def submit_bowl_picks(year):
    user = _current_user()
    data = _json_body()
    result = bowl_pick_ledger.submit(
        user.id,
        year,
        _list_field(data, "picks"),
        mode=_submission_mode(data, SubmissionMode.MERGE),
    )
    return _submission_response(result)


@bp.route("/bowl-picks/<int:year>")
def bowl_picks(year):
    user = _current_user()
    picks = bowl_pick_ledger.get_for_year(user.id, year)
    return jsonify([pick.to_dict() for pick in picks])


# Results


def _scores(data):
    return (
        parse_whole_number(data.get("favorite_score"), "favorite_score"),
        parse_whole_number(data.get("underdog_score"), "underdog_score"),
    )


def _single_result_response(game, error):
    if game is None:
        status = 404 if error.endswith("not found") else 400
        return jsonify({"success": False, "error": error}), status
    return jsonify({"success": True, "game": game.to_dict()})


@bp.route("/results/game/<int:game_id>", methods=["POST"])
def enter_result(game_id):
    admin = _require_admin()
    favorite_score, underdog_score = _scores(_json_body())
    game, error = catalog.enter_result(game_id, favorite_score, underdog_score, entered_by=admin.id)
    return _single_result_response(game, error)


@bp.route("/results/<int:year>/<int:week>", methods=["POST"])
def enter_week_results(year, week):
    admin = _require_admin()
    entries = _list_field(_json_body(), "results")
    return jsonify(catalog.bulk_enter_results(entries, entered_by=admin.id, year=year, week=week))


@bp.route("/bowl-results/game/<int:bowl_game_id>", methods=["POST"])
def enter_bowl_result(bowl_game_id):
    admin = _require_admin()
    favorite_score, underdog_score = _scores(_json_body())
    game, error = catalog.enter_bowl_result(
        bowl_game_id, favorite_score, underdog_score, entered_by=admin.id
    )
    return _single_result_response(game, error)


@bp.route("/bowl-results", methods=["POST"])
def enter_bowl_results():
    admin = _require_admin()
    data = _json_body()
    year = data.get("year")
    if year is not None:
        year = parse_whole_number(year, "year")
    return jsonify(
        catalog.bulk_enter_bowl_results(_list_field(data, "results"), entered_by=admin.id, year=year)
    )


# Leaderboards


@bp.route("/leaderboard/<int:year>/week/<int:week>")
def weekly_leaderboard(year, week):
    return jsonify(
        {"year": year, "week": week, "standings": leaderboard.weekly_standings(year, week)}
    )


@bp.route("/leaderboard/<int:year>/season")
def season_leaderboard(year):
    return jsonify({"year": year, "standings": leaderboard.season_standings(year)})


@bp.route("/leaderboard/<int:year>/user/<int:user_id>")
def user_history(year, user_id):
    history = leaderboard.user_history(user_id, year)
    if history is None:
        abort(404)
    return jsonify(history)


@bp.route("/bowl-leaderboard/<int:year>")
def bowl_leaderboard(year):
    return jsonify({"year": year, "standings": leaderboard.bowl_standings(year)})


@bp.route("/bowl-leaderboard/<int:year>/user/<int:user_id>")
def bowl_user_history(year, user_id):
    history = leaderboard.bowl_user_history(user_id, year)
    if history is None:
        abort(404)
    return jsonify(history)
