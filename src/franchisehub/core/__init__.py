"""
Core 模块：错误分类与通用工具。
"""

from .errors import ErrorKind, ErrorSeverity, FranchiseError, Result

__all__ = ["ErrorKind", "ErrorSeverity", "FranchiseError", "Result"]
