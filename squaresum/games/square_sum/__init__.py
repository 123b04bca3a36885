# squaresum/games/square_sum/__init__.py
from flask import Blueprint

bp = Blueprint(
    "square_sum",
    __name__,
    url_prefix="/games/square_sum",
)
