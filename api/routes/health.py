from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_service_factory, get_staleness_monitor
from api.schemas import HealthResponse, PairHealth
from application.services import StalenessMonitor
from application.services.service_factory import ServiceFactory

router = APIRouter(prefix='/api', tags=['health'])


@router.get('/health', response_model=HealthResponse, summary='Freshness of monitored pairs and backing services')
async def health_check(
	monitor: Annotated[StalenessMonitor, Depends(get_staleness_monitor)],
	factory: Annotated[ServiceFactory, Depends(get_service_factory)],
) -> HealthResponse:
	pairs = {key: PairHealth(**state) for key, state in monitor.status().items()}
	services = await factory.check_connections()

	healthy = all(services.values()) and not any(p.stale for p in pairs.values())
	return HealthResponse(status='healthy' if healthy else 'degraded', pairs=pairs, services=services)
