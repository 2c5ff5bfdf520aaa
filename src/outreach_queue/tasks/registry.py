"""Read-only view over users: roles, team membership and language capabilities."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from outreach_queue.storage.common import load_json_list
from outreach_queue.storage.sqlmodel_models import AppUser
from outreach_queue.tasks.errors import ForbiddenError, NotFoundError, ValidationError
from outreach_queue.tasks.models import AgentView, Role


class AgentRegistry:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_user(self, user_id: str) -> AgentView | None:
        with Session(self.engine) as session:
            row = session.get(AppUser, user_id)
        if row is None:
            return None
        return _to_agent_view(row)

    def require_user(self, user_id: str) -> AgentView:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(f"Agent not found: {user_id}")
        return user

    def require_active_user(self, user_id: str) -> AgentView:
        """Existing and active user, whatever the role."""

        user = self.require_user(user_id)
        if not user.is_active:
            raise ForbiddenError(f"Agent {user_id} is inactive")
        return user

    def require_assignable_agent(self, user_id: str) -> AgentView:
        """Active call-centre agent eligible to receive tasks."""

        agent = self.require_user(user_id)
        if not agent.is_active or agent.role != Role.CC_AGENT:
            raise ValidationError(f"Invalid agent: {user_id} is not an active call centre agent")
        return agent

    def team_agents(self, team_lead_id: str) -> list[AgentView]:
        """Active agents reporting to the lead, ordered by name then id."""

        statement = (
            select(AppUser)
            .where(
                col(AppUser.team_lead_id) == team_lead_id,
                col(AppUser.role) == Role.CC_AGENT.value,
                col(AppUser.is_active).is_(True),
            )
            .order_by(col(AppUser.display_name).asc(), col(AppUser.user_id).asc())
        )
        with Session(self.engine) as session:
            rows = session.exec(statement).all()
        return [_to_agent_view(row) for row in rows]


def _to_agent_view(row: AppUser) -> AgentView:
    return AgentView(
        user_id=row.user_id,
        display_name=row.display_name,
        email=row.email,
        role=Role(row.role),
        team_lead_id=row.team_lead_id,
        is_active=row.is_active,
        language_capabilities=tuple(load_json_list(row.language_capabilities_json)),
    )
