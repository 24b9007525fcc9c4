"""
Admission Routes
================

- POST /admission/check  run the gatekeeper for an authenticated identity

A denial is a normal answer (200 with ``allowed: false``), not an HTTP
error: the caller decides how to render it.
"""

from fastapi import APIRouter

from src.application.api.dependencies import GatekeeperDep
from src.application.api.models.guard import AdmissionCheckRequest, AdmissionCheckResponse

router = APIRouter(prefix="/admission", tags=["Admission"])


@router.post("/check", response_model=AdmissionCheckResponse)
async def check_admission(body: AdmissionCheckRequest, gatekeeper: GatekeeperDep):
    decision = await gatekeeper.check_access(body.identity, role=body.role, bypass_list=body.bypass_list)
    return AdmissionCheckResponse(**decision.to_dict())
