"""
Entity schemas and their validation rules.
"""

from .schema import Action, Column, Entity, Schema, define_model
from .validation import Constraint

__all__ = ["Action", "Column", "Constraint", "Entity", "Schema", "define_model"]
