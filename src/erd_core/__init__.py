from erd_core.validate import validate_model

__all__ = ["validate_model"]
