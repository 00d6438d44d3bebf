"""
/**
 * @file dialect_backend/controllers/dialects_controller.py
 * @description 方言目录控制器。
 */
"""

from fastapi import APIRouter

from dialect_backend.models.dialect_catalog import DIALECTS, list_dialects
from dialect_backend.utils import iso_now


router = APIRouter()


@router.get("/api/dialects")
def dialects():
    return {
        "success": True,
        "dialects": list_dialects(),
        "total_count": len(DIALECTS),
        "timestamp": iso_now(),
    }
