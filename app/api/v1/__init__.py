from app.api.v1 import magic_link, profiles, responses, surveys

__all__ = [
    "magic_link",
    "surveys",
    "responses",
    "profiles",
]
