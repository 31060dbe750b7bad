"""
Generation Parameter Validation
Field-by-field checks for music generation requests with human readable errors
"""

import math
from numbers import Real
from typing import Any, Dict, Optional

from .errors import ValidationError


MODELS = ("V3_5", "V4", "V4_5", "V4_5PLUS", "V5")
LEGACY_MODELS = ("V3_5", "V4")
VOCAL_GENDERS = ("m", "f")
WEIGHT_FIELDS = ("styleWeight", "weirdnessConstraint", "audioWeight")


class GenerationParamsValidator:
    """Validator for generation parameters sent to the music API"""

    TITLE_MAX = 80
    STYLE_MAX_LEGACY = 200
    STYLE_MAX = 1000
    CUSTOM_PROMPT_MAX_LEGACY = 3000
    CUSTOM_PROMPT_MAX = 5000
    SIMPLE_PROMPT_MAX = 500
    WEIGHT_TOLERANCE = 0.0001

    @classmethod
    def validate(cls, body: Any) -> Dict[str, Any]:
        """Validate a request body, returning it unchanged or raising ValidationError"""

        if not isinstance(body, dict):
            raise ValidationError("Invalid request body")

        if not isinstance(body.get("customMode"), bool):
            raise ValidationError("customMode must be a boolean")

        if not isinstance(body.get("instrumental"), bool):
            raise ValidationError("instrumental must be a boolean")

        model = body.get("model")
        if not model or not isinstance(model, str):
            raise ValidationError("model is required and must be a string")

        if model not in MODELS:
            raise ValidationError(f"model must be one of: {', '.join(MODELS)}")

        if body["customMode"]:
            cls._validate_custom_mode(body, model)
        else:
            prompt = body.get("prompt")
            if not cls._non_empty(prompt):
                raise ValidationError("prompt is required in Non-custom Mode")
            if len(prompt) > cls.SIMPLE_PROMPT_MAX:
                raise ValidationError(
                    f"prompt must be {cls.SIMPLE_PROMPT_MAX} characters or less in Non-custom Mode"
                )

        if "vocalGender" in body and body["vocalGender"] is not None:
            if body["vocalGender"] not in VOCAL_GENDERS:
                raise ValidationError('vocalGender must be "m" or "f"')

        for field in WEIGHT_FIELDS:
            if field in body and body[field] is not None:
                cls._validate_weight(field, body[field])

        return body

    @classmethod
    def _validate_custom_mode(cls, body: Dict[str, Any], model: str) -> None:
        style = body.get("style")
        title = body.get("title")
        legacy = model in LEGACY_MODELS

        if not cls._non_empty(style):
            raise ValidationError("style is required in Custom Mode")

        if not cls._non_empty(title):
            raise ValidationError("title is required in Custom Mode")

        if len(title) > cls.TITLE_MAX:
            raise ValidationError(f"title must be {cls.TITLE_MAX} characters or less")

        style_max = cls.style_limit(model)
        if len(style) > style_max:
            if legacy:
                raise ValidationError(
                    f"style must be {style_max} characters or less for V3_5 and V4 models"
                )
            raise ValidationError(
                f"style must be {style_max} characters or less for V4_5, V4_5PLUS, and V5 models"
            )

        if body["instrumental"]:
            return

        prompt = body.get("prompt")
        if not cls._non_empty(prompt):
            raise ValidationError("prompt is required in Custom Mode when instrumental is false")

        prompt_max = cls.custom_prompt_limit(model)
        if len(prompt) > prompt_max:
            if legacy:
                raise ValidationError(
                    f"prompt must be {prompt_max} characters or less for V3_5 and V4 models"
                )
            raise ValidationError(
                f"prompt must be {prompt_max} characters or less for V4_5, V4_5PLUS, and V5 models"
            )

    @classmethod
    def _validate_weight(cls, field: str, value: Any) -> None:
        if (isinstance(value, bool) or not isinstance(value, Real)
                or not math.isfinite(value) or not 0 <= value <= 1):
            raise ValidationError(f"{field} must be a number between 0 and 1")

        rounded = round(value * 100) / 100
        if abs(value - rounded) > cls.WEIGHT_TOLERANCE:
            raise ValidationError(f"{field} must be a multiple of 0.01")

    @classmethod
    def style_limit(cls, model: str) -> int:
        return cls.STYLE_MAX_LEGACY if model in LEGACY_MODELS else cls.STYLE_MAX

    @classmethod
    def custom_prompt_limit(cls, model: str) -> int:
        return cls.CUSTOM_PROMPT_MAX_LEGACY if model in LEGACY_MODELS else cls.CUSTOM_PROMPT_MAX

    @staticmethod
    def _non_empty(value: Optional[Any]) -> bool:
        return isinstance(value, str) and bool(value.strip())
