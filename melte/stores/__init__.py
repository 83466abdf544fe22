"""Persistent stores used by the compiler."""

from .compile_cache import CompileCache, result_from_payload, result_to_payload

__all__ = ["CompileCache", "result_from_payload", "result_to_payload"]
