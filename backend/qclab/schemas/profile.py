"""Profile schemas."""

import uuid

from pydantic import BaseModel

from qclab.models.enums import QCRole


class ProfileRead(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    qc_role: QCRole
    laboratory_id: uuid.UUID | None
    client_id: uuid.UUID | None
    is_global_admin: bool

    model_config = {"from_attributes": True}
