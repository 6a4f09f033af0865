from .flow import AuthFlow

__all__ = ["AuthFlow"]
