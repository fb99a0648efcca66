"""
Error vocabulary for pick submission and result entry.

Per-item problems are reported as rejection dictionaries carrying one of the
codes below. Only malformed input raises.
"""

NOT_FOUND = "not_found"
LOCKED = "locked"
INVALID_SELECTION = "invalid_selection"
INVALID_SCORE = "invalid_score"
DUPLICATE = "duplicate"


class MalformedSubmission(ValueError):
    """Submission input that can't be interpreted at all (missing ids, bad types)"""


def rejection(game_id, code, reason):
    """Build a per-item rejection entry"""
    return {"game_id": game_id, "code": code, "reason": reason}


def failure(error):
    """Build the result of an all-or-nothing precondition failure"""
    return {"success": False, "error": error}
