# franchisehub/__init__.py
"""
FranchiseHub - 加盟申请与签约核心

管理意向加盟商从提交申请到成为加盟商的完整流程：
- 申请提交与资质文件上传
- 总部审核（受理、通过、驳回、要求补充材料）
- 合同模板选择与电子签约
- 基于角色与账号状态的权限判定
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "FranchiseHub Team"

# 延迟导入以避免循环依赖
def __getattr__(name: str):
    """延迟导入模块"""

    # Errors
    if name == "FranchiseError":
        from franchisehub.core.errors import FranchiseError
        return FranchiseError
    if name == "ErrorKind":
        from franchisehub.core.errors import ErrorKind
        return ErrorKind

    # Domain
    if name == "Role":
        from franchisehub.domain.identity import Role
        return Role
    if name == "AccountStatus":
        from franchisehub.domain.identity import AccountStatus
        return AccountStatus
    if name == "ApplicationStatus":
        from franchisehub.domain.application import ApplicationStatus
        return ApplicationStatus

    # Application
    if name == "RequestContext":
        from franchisehub.application.context import RequestContext
        return RequestContext
    if name == "FranchiseServices":
        from franchisehub.application.bootstrap import FranchiseServices
        return FranchiseServices
    if name == "build_services":
        from franchisehub.application.bootstrap import build_services
        return build_services

    # Config
    if name == "Settings":
        from franchisehub.config.settings import Settings
        return Settings
    if name == "load_settings":
        from franchisehub.config.settings import load_settings
        return load_settings

    raise AttributeError(f"module 'franchisehub' has no attribute '{name}'")


__all__ = [
    "__version__",
    "FranchiseError",
    "ErrorKind",
    "Role",
    "AccountStatus",
    "ApplicationStatus",
    "RequestContext",
    "FranchiseServices",
    "build_services",
    "Settings",
    "load_settings",
]
