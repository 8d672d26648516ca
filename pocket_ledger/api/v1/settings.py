"""GET/PUT /v1/settings"""

from fastapi import APIRouter, Depends

from pocket_ledger.api.v1.schemas import SettingsSchema
from pocket_ledger.api.dependencies import get_ledger
from pocket_ledger.domain.models import AppSettings
from pocket_ledger.services.month import Ledger

router = APIRouter()


@router.get("/settings", response_model=SettingsSchema)
async def get_settings(ledger: Ledger = Depends(get_ledger)):
    return SettingsSchema.model_validate(await ledger.get_settings())


@router.put("/settings", response_model=SettingsSchema)
async def update_settings(request_body: SettingsSchema, ledger: Ledger = Depends(get_ledger)):
    saved = await ledger.update_settings(AppSettings(**request_body.model_dump()))
    return SettingsSchema.model_validate(saved)
