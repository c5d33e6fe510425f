# registry.py
from __future__ import annotations

from .handlers.arrays import array_handlers
from .handlers.base import TypeHandlerRegistry
from .handlers.choice import choice_handlers
from .handlers.masks import mask_handlers
from .handlers.text import text_handlers


def default_registry() -> TypeHandlerRegistry:
    # All supported LimeSurvey question types.
    return TypeHandlerRegistry([*array_handlers(), *mask_handlers(), *choice_handlers(), *text_handlers()])
