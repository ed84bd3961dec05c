# provenance/access/control.py
import logging
from enum import Enum
from typing import List, Optional

from provenance.chain.context import LedgerContext
from provenance.core.errors import NotFound, Unauthorized, InvalidIdentifier
from provenance.core.identity import require_identifier
from provenance.core.types import Item
from provenance.events import (
    OwnershipTransferred,
    ParticipantAuthorized,
    ParticipantRevoked,
    SCOPE_ADMINISTRATION,
)

logger = logging.getLogger(__name__)

ADMINISTRATOR_KEY = "administrator"


class CheckpointPolicy(str, Enum):
    """Who may append status checkpoints to an item."""
    AUTHORIZED = "authorized"
    CUSTODIAN = "custodian"
    AUTHORIZED_OR_CUSTODIAN = "authorized_or_custodian"


class AccessControl:
    """
    Administrator + authorized-participant set.

    The administrator manages the set and may deactivate any item; authorized
    participants (and the administrator) may record checkpoints. Custody of a
    single item is checked by the registry, not here.
    """

    def __init__(self, ctx: LedgerContext, checkpoint_policy: CheckpointPolicy = CheckpointPolicy.AUTHORIZED):
        self.ctx = ctx
        self.checkpoint_policy = CheckpointPolicy(checkpoint_policy)

    def bootstrap(self, administrator: Optional[str]) -> str:
        """
        Make sure the store has an administrator. A fresh store takes the given
        one (the deploying identity); an existing store keeps its own.
        """
        with self.ctx.lock:
            stored = self.ctx.store.get_meta(ADMINISTRATOR_KEY)
            if stored is None and administrator is not None:
                require_identifier(administrator, "administrator")
                with self.ctx.mutation() as store:
                    # Another process may have initialised the file meanwhile
                    stored = store.get_meta(ADMINISTRATOR_KEY)
                    if stored is None:
                        ts = self.ctx.clock()
                        store.set_meta(ADMINISTRATOR_KEY, administrator)

            if stored is not None:
                if administrator is not None and administrator != stored:
                    logger.warning(
                        "Ignoring administrator %r: ledger is administered by %r", administrator, stored
                    )
                return stored

            if administrator is None:
                raise InvalidIdentifier("Ledger has no administrator yet; one must be given to initialise it")
            logger.info("Ledger initialised with administrator %s", administrator)
            self.ctx.publish([OwnershipTransferred(
                scope=SCOPE_ADMINISTRATION,
                previous_holder="",
                new_holder=administrator,
                actor=administrator,
                timestamp=ts,
            )])
            return administrator

    @property
    def administrator(self) -> Optional[str]:
        with self.ctx.lock:
            return self.ctx.store.get_meta(ADMINISTRATOR_KEY)

    def is_administrator(self, actor: str) -> bool:
        return actor is not None and actor == self.administrator

    def is_authorized(self, actor: str) -> bool:
        with self.ctx.lock:
            return self.is_administrator(actor) or self.ctx.store.is_participant(actor)

    def may_record_checkpoint(self, actor: str, item: Item) -> bool:
        if self.checkpoint_policy is CheckpointPolicy.CUSTODIAN:
            return actor == item.current_custodian
        if self.checkpoint_policy is CheckpointPolicy.AUTHORIZED_OR_CUSTODIAN:
            return actor == item.current_custodian or self.is_authorized(actor)
        return self.is_authorized(actor)

    def participants(self) -> List[str]:
        with self.ctx.lock:
            return self.ctx.store.list_participants()

    def _require_admin(self, caller: str, action: str) -> None:
        if not self.is_administrator(caller):
            logger.info("Rejected %s by %r: not the administrator", action, caller)
            raise Unauthorized(f"Only the administrator may {action}")

    def authorize(self, actor: str, caller: str) -> None:
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                self._require_admin(caller, "authorize participants")
                require_identifier(actor, "participant")
                ts = self.ctx.clock()
                store.add_participant(actor)
            logger.info("Participant %s authorized by %s", actor, caller)
            self.ctx.publish([ParticipantAuthorized(actor=actor, by=caller, timestamp=ts)])

    def revoke(self, actor: str, caller: str) -> None:
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                self._require_admin(caller, "revoke participants")
                if not store.is_participant(actor):
                    raise NotFound(f"{actor!r} is not an authorized participant")
                ts = self.ctx.clock()
                store.remove_participant(actor)
            logger.info("Participant %s revoked by %s", actor, caller)
            self.ctx.publish([ParticipantRevoked(actor=actor, by=caller, timestamp=ts)])

    def transfer_administration(self, new_admin: str, caller: str) -> None:
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                self._require_admin(caller, "transfer administration")
                require_identifier(new_admin, "new administrator")
                previous = store.get_meta(ADMINISTRATOR_KEY)
                ts = self.ctx.clock()
                store.set_meta(ADMINISTRATOR_KEY, new_admin)
            logger.info("Administration transferred from %s to %s", previous, new_admin)
            self.ctx.publish([OwnershipTransferred(
                scope=SCOPE_ADMINISTRATION,
                previous_holder=previous,
                new_holder=new_admin,
                actor=caller,
                timestamp=ts,
            )])
