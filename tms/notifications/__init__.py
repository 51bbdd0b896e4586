from .mailer import Mailer, create_mailer, get_mailer

__all__ = ["Mailer", "create_mailer", "get_mailer"]
