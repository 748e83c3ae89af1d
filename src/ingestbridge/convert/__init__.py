"""
Converter layer: raw byte streams to typed records.

Converter kinds register by config ``type`` with ``@register_converter``.
Named converter configs live in ``converter_registry``.
"""

from ingestbridge.convert.base import BaseConverter, Converter
from ingestbridge.convert.config import ConverterConfig, ConverterOptions, FieldConfig
from ingestbridge.convert.context import EvaluationContext
from ingestbridge.convert.expressions import compile_expression, register_function
from ingestbridge.convert.registry import (
    ConverterRegistry,
    converter_registry,
    load_converter_file,
    register_converter,
)
from ingestbridge.convert.resolver import resolve_converter

__all__ = [
    # Protocol
    "Converter",
    "BaseConverter",
    "EvaluationContext",
    # Config
    "ConverterConfig",
    "ConverterOptions",
    "FieldConfig",
    # Expressions
    "compile_expression",
    "register_function",
    # Registry
    "ConverterRegistry",
    "converter_registry",
    "register_converter",
    "load_converter_file",
    "resolve_converter",
]
