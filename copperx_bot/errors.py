from typing import Optional


class CopperxBotError(Exception):
    """Base class for all bot errors"""


class ConfigurationError(CopperxBotError):
    """Missing or invalid settings at startup"""

    def __init__(self, problems):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class ApiError(CopperxBotError):
    """A failed call to the Copperx API.

    Covers HTTP error statuses, timeouts, connection problems and
    unparseable responses. `status_code` is 0 when no response arrived.
    """

    def __init__(self, status_code: int, message: str, payload: Optional[dict] = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}
        super().__init__(f"API Error ({status_code}): {message}")


class AuthExpiredError(CopperxBotError):
    """Stored credentials are no longer accepted by the API"""


class SceneTransitionError(CopperxBotError):
    """A scene tried to move along an edge it never declared"""

    def __init__(self, scene_id: str, source: str, target: str):
        self.scene_id = scene_id
        self.source = source
        self.target = target
        super().__init__(f"Scene '{scene_id}' cannot move from '{source}' to '{target}'")


class TokenDecryptionError(CopperxBotError):
    """A stored access token could not be decrypted"""
