"""
API v1路由汇总
"""

from fastapi import APIRouter

from app.api.v1.endpoints import audio, notes, folders, summarize, migration

api_router = APIRouter()

# 包含所有端点路由
api_router.include_router(notes.router, prefix="/notes", tags=["notes"])
api_router.include_router(folders.router, prefix="/folders", tags=["folders"])
api_router.include_router(audio.router, prefix="/audio", tags=["audio"])
api_router.include_router(summarize.router, tags=["summarize"])
api_router.include_router(migration.router, tags=["migration"])
