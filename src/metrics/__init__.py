from .context import MetricsContext, SUCCESS, MALFORMED, REJECTED

__all__ = ["MetricsContext", "SUCCESS", "MALFORMED", "REJECTED"]
