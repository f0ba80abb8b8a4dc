from copperx_bot.config.config import Settings, load_settings
from copperx_bot.config.routes import is_protected_action, is_protected_command

__all__ = ["Settings", "load_settings", "is_protected_action", "is_protected_command"]
