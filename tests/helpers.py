import uuid

from fincontrols.actor import ActorContext

TENANT_ID = "a0000000-0000-0000-0000-000000000001"


def make_actor(role: str = "accountant", tenant_id: str = TENANT_ID) -> ActorContext:
    return ActorContext(
        user_id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        role=role,
        email=f"{role}@acme.co.zm",
    )
