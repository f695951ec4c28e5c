# -*- coding: utf-8 -*-
"""
诊断 API

只读视图 + 校验触发，不提供业务调用入口
"""

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from capcore.exceptions import CapcoreException, ConfigurationError
from capcore.resolution.policy import ResolutionContext
from capcore.runtime import CapabilityRuntime
from .schemas import (
    ContractsResponse,
    PolicyResponse,
    ProvidersResponse,
    ResolveRequest,
    ResolveResponse,
    VerifyResponse,
)


def create_diagnostics_router(runtime: CapabilityRuntime) -> APIRouter:
    """
    创建诊断路由

    Args:
        runtime: 能力运行时
    """
    router = APIRouter()

    @router.get("/contracts", response_model=ContractsResponse)
    async def list_contracts():
        """列出所有能力契约"""
        return {"contracts": [c.to_dict() for c in runtime.catalog.all()]}

    @router.get("/providers", response_model=ProvidersResponse)
    async def list_providers():
        """列出注册表条目（状态、构造次数、校验结果）"""
        return {"providers": runtime.registry.describe()}

    @router.get("/policy", response_model=PolicyResponse)
    async def get_policy():
        """当前策略快照"""
        return runtime.policy.to_dict()

    @router.post("/resolve", response_model=ResolveResponse)
    def resolve(request: ResolveRequest):
        """演练解析：返回某个上下文会使用的提供方序列"""
        context = ResolutionContext(tenant_id=request.tenant_id, flags=request.flags)
        sequence = runtime.resolver.resolve(request.capability, context)
        return {"capability": request.capability, "sequence": list(sequence)}

    @router.post("/verify", response_model=VerifyResponse)
    def verify():
        """对所有已注册适配器运行契约校验"""
        matrix = runtime.verify_all(record=True)
        return {"passed": matrix.passed, "rows": matrix.to_rows()}

    return router


def create_app(runtime: CapabilityRuntime, prefix: str = "/api/capcore") -> FastAPI:
    """创建诊断服务应用"""
    app = FastAPI(
        title="capcore diagnostics",
        description="能力解析核心 - 诊断接口",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    @app.exception_handler(CapcoreException)
    async def capcore_exception_handler(request: Request, exc: CapcoreException):
        """核心异常转为结构化响应"""
        status_code = 400 if isinstance(exc, ConfigurationError) else 502
        logger.warning(f"诊断请求失败: {request.url.path}: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    app.include_router(create_diagnostics_router(runtime), prefix=prefix, tags=["诊断"])
    return app
