"""
Alias Manager: link player names to a registered user

Aliases feed the user's personal statistics only. The ledger never reads
them, and any user may claim any name for their own view.
"""
from typing import List
import logging

from sqlalchemy.orm import Session

from models import PlayerAlias
from core.exceptions import DuplicateConflict, InvalidInput, NotFound
from core.permissions import Actor
from database import transactional

logger = logging.getLogger(__name__)


def _normalize(player_name: str) -> str:
    name = (player_name or "").strip().casefold()
    if not name:
        raise InvalidInput("player_name is required")
    return name


class AliasManager:

    @staticmethod
    @transactional
    def add_alias(db: Session, actor: Actor, player_name: str) -> PlayerAlias:
        name = _normalize(player_name)
        existing = db.query(PlayerAlias).filter(
            PlayerAlias.user_id == actor.user_id,
            PlayerAlias.player_name == name
        ).first()
        if existing:
            raise DuplicateConflict(f"'{player_name}' is already linked to you")

        alias = PlayerAlias(user_id=actor.user_id, player_name=name)
        db.add(alias)
        db.flush()
        logger.info(f"User {actor.user_id} claimed player name '{name}'")
        return alias

    @staticmethod
    @transactional
    def remove_alias(db: Session, actor: Actor, player_name: str) -> None:
        name = _normalize(player_name)
        alias = db.query(PlayerAlias).filter(
            PlayerAlias.user_id == actor.user_id,
            PlayerAlias.player_name == name
        ).first()
        if not alias:
            raise NotFound(f"'{player_name}' is not linked to you")
        db.delete(alias)

    @staticmethod
    def list_aliases(db: Session, actor: Actor) -> List[PlayerAlias]:
        return db.query(PlayerAlias).filter(
            PlayerAlias.user_id == actor.user_id
        ).order_by(PlayerAlias.player_name).all()
