from backend.server.routers.pipelines import router as pipelines_router

__all__ = ["pipelines_router"]
