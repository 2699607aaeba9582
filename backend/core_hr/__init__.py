"""Core HR module — the Employee account table the workflows read from."""

from backend.core_hr.models import Employee

__all__ = ["Employee"]
