# =============================================================================
# Operator API Routes
# =============================================================================
#
# Endpoints:
#   POST /api/admin/reconcile   - Repair interrupted two-phase writes (ADMIN)
#
# =============================================================================

from fastapi import APIRouter, Depends
from pydantic.alias_generators import to_camel

from projecthub.api.deps import get_storage
from projecthub.api.responses import envelope
from projecthub.auth.capabilities import Action
from projecthub.auth.context import Caller
from projecthub.auth.policies import ensure, get_caller
from projecthub.services.maintenance import reconcile
from projecthub.storage.base import StorageProvider

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reconcile")
async def run_reconcile(
    caller: Caller = Depends(get_caller),
    storage: StorageProvider = Depends(get_storage),
):
    """Link or release stranded invite claims and finish delete cascades."""
    ensure(caller, Action.MAINTENANCE_RECONCILE)
    counts = await reconcile(storage)
    return envelope({to_camel(key): value for key, value in counts.items()}, "Reconcile complete")
