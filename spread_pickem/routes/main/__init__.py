from flask import Blueprint

bp = Blueprint("main", __name__)

from spread_pickem.routes.main import routes  # noqa: F401, E402
