"""Web layer for the profile analyzer."""

from .routes import bp as profile_blueprint

__all__ = ["profile_blueprint"]
