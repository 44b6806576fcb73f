# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and validating request data.
"""

from flask import request
from typing import Dict, Any, Optional, Type, TypeVar
from pydantic import BaseModel, ValidationError
import logging

from middleware.error_handler import ValidationException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class RequestParser:
    """Utility for parsing and validating request data."""

    @staticmethod
    def parse_json_body(required: bool = True) -> Optional[Dict[str, Any]]:
        """
        Parse JSON request body.

        Args:
            required: Whether a JSON object body is required

        Returns:
            Parsed JSON object, or None when optional and absent

        Raises:
            ValidationException: Body is required but missing or not an object
        """
        data = request.get_json(silent=True)
        if data is None:
            if required:
                raise ValidationException("Request body must be a JSON object")
            return None
        if not isinstance(data, dict):
            raise ValidationException("Request body must be a JSON object")
        return data

    @staticmethod
    def parse_model(model: Type[ModelT], required: bool = True) -> ModelT:
        """
        Validate the JSON body against a pydantic model.

        An optional missing body validates as an empty object.

        Raises:
            ValidationException: Body missing or invalid for the model
        """
        data = RequestParser.parse_json_body(required=required) or {}
        try:
            return model.model_validate(data)
        except ValidationError as e:
            errors = [
                {
                    "field": ".".join(str(part) for part in error["loc"]),
                    "message": error["msg"]
                }
                for error in e.errors()
            ]
            logger.info(
                "Request validation failed",
                extra={"path": request.path, "model": model.__name__, "error_count": len(errors)}
            )
            raise ValidationException("Request validation failed", errors)
