from copperx_bot.services.container import Services, build_services

__all__ = ["Services", "build_services"]
