"""Prometheus metrics endpoint"""
import logging
from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from trajectory.db.connection import db
from trajectory.resilience.metrics import update_pool_gauges

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics_endpoint():
    """
    Expose Prometheus metrics

    Coach call, retry and gamification counters, plus connection pool
    gauges taken at scrape time.
    """
    update_pool_gauges(db.pool_stats())
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
