# app/schemas/agreement.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class AgreementResponse(BaseModel):
    id: str
    collaboration_id: str
    version: int
    agreement_text: str
    deal_type: str
    cash_amount_minor: int
    stay_included: bool
    stay_nights: Optional[int] = None
    deliverables: List[str]
    traffic_bonus_threshold_clicks: Optional[int] = None
    traffic_bonus_amount_minor: Optional[int] = None
    content_deadline: datetime
    host_accepted_at: Optional[datetime] = None
    creator_accepted_at: Optional[datetime] = None
    is_fully_executed: bool
    executed_at: Optional[datetime] = None
    row_version: int

    model_config = {"from_attributes": True}
