"""
Entitlement grants.

Two sources feed the same primitive:
- push: a signed `payment.completed` webhook (grant_payment)
- pull: a restore request that asks Tebex for the player's active packages
  (restore_purchases)

Both end in apply_grants, which inserts user_cosmetics rows with
ON CONFLICT DO NOTHING on (user_id, cosmetic_id). A pair is granted at most
once no matter how often, or from which source, it is delivered.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from plus_api.core.db import insert_ignore, session_scope
from plus_api.core.logs import emit
from plus_api.modules.accounts.service import canonical_player_id, get_or_create
from plus_api.modules.cosmetics.models import Cosmetic, CosmeticPackage, UserCosmetic

from .tebex.events import (
    PaymentCompleted,
    TebexPaymentSubject,
    TebexProduct,
    UnknownWebhook,
    WebhookPayload,
    WebhookValidation,
)
from .tebex.plugin_api import TebexPluginClient

# product custom data convention: "cosmetic:<id>"
CUSTOM_DATA_PATTERN = re.compile(r"^\s*cosmetic:(\d+)\s*$")


@dataclass(frozen=True)
class Grant:
    player: str  # canonical game-account UUID
    cosmetic_id: int
    transaction_id: str


def cosmetic_from_custom(custom: Any) -> Optional[int]:
    if not isinstance(custom, str):
        return None
    m = CUSTOM_DATA_PATTERN.match(custom)
    if not m:
        return None
    return int(m.group(1))


def _product_player(product: TebexProduct, payment: TebexPaymentSubject) -> Optional[str]:
    identity = product.username or payment.customer.username
    try:
        return canonical_player_id(identity.id)
    except ValueError:
        return None


def _existing_cosmetic_ids(session: Session, ids: Iterable[int]) -> Set[int]:
    wanted = set(ids)
    if not wanted:
        return set()
    return set(session.scalars(select(Cosmetic.id).where(Cosmetic.id.in_(wanted))))


def _cosmetics_by_package(session: Session, package_ids: Iterable[int]) -> Dict[int, List[int]]:
    wanted = set(package_ids)
    out: Dict[int, List[int]] = {}
    if not wanted:
        return out
    rows = session.execute(
        select(CosmeticPackage.package_id, CosmeticPackage.cosmetic_id)
        .where(CosmeticPackage.package_id.in_(wanted))
        .order_by(CosmeticPackage.package_id, CosmeticPackage.cosmetic_id)
    )
    for package_id, cosmetic_id in rows:
        out.setdefault(package_id, []).append(cosmetic_id)
    return out


def grants_from_payment(session: Session, payment: TebexPaymentSubject) -> List[Grant]:
    """
    Collect (player, cosmetic, transaction) triples from a completed payment.

    Products tagged with cosmetic custom data grant that cosmetic; untagged
    products grant whatever the package mapping assigns to their id. Products
    with an unparseable player id, unknown cosmetic ids, or no mapping are
    skipped: a basket may hold things that are not cosmetics.
    """
    tagged: List[Tuple[str, int]] = []
    untagged: List[Tuple[str, int]] = []

    for product in payment.products:
        player = _product_player(product, payment)
        if player is None:
            emit("debug", "payments.grant.skip_player", f"product {product.id}: player id not a UUID", __name__)
            continue
        cosmetic_id = cosmetic_from_custom(product.custom)
        if cosmetic_id is not None:
            tagged.append((player, cosmetic_id))
        else:
            untagged.append((player, product.id))

    known = _existing_cosmetic_ids(session, (cid for _, cid in tagged))
    by_package = _cosmetics_by_package(session, (pid for _, pid in untagged))

    grants: List[Grant] = []
    for player, cosmetic_id in tagged:
        if cosmetic_id not in known:
            emit(
                "warning",
                "payments.grant.unknown_cosmetic",
                f"custom data references unknown cosmetic {cosmetic_id}",
                __name__,
                transaction_id=payment.transaction_id,
            )
            continue
        grants.append(Grant(player, cosmetic_id, payment.transaction_id))
    for player, package_id in untagged:
        for cosmetic_id in by_package.get(package_id, []):
            grants.append(Grant(player, cosmetic_id, payment.transaction_id))
    return grants


def apply_grants(session: Session, grants: Iterable[Grant]) -> List[Grant]:
    """
    Insert ownership edges inside the caller's transaction.

    Returns only the grants whose rows this call actually inserted; pairs
    that already existed are dropped by the database and not reported.
    """
    by_player: Dict[str, Dict[int, Grant]] = {}
    for g in grants:
        # last grant for a pair wins
        by_player.setdefault(g.player, {})[g.cosmetic_id] = g

    inserted: List[Grant] = []
    for player, pending in by_player.items():
        user = get_or_create(session, player)
        result = insert_ignore(
            session,
            UserCosmetic,
            [
                {"user_id": user.id, "cosmetic_id": g.cosmetic_id, "transaction_id": g.transaction_id}
                for g in pending.values()
            ],
            index_elements=["user_id", "cosmetic_id"],
            returning=["cosmetic_id"],
        )
        new_ids = set(result.scalars()) if result is not None else set()
        inserted.extend(g for g in pending.values() if g.cosmetic_id in new_ids)
    return inserted


def grant_payment(payment: TebexPaymentSubject) -> List[Grant]:
    if not payment.is_complete:
        # no revocation path: the event name asserts completion, record the oddity
        emit(
            "warning",
            "payments.grant.unexpected_status",
            f"payment.completed with status {payment.status.id} ({payment.status.description})",
            __name__,
            transaction_id=payment.transaction_id,
        )

    with session_scope() as session:
        grants = grants_from_payment(session, payment)
        inserted = apply_grants(session, grants)

    emit(
        "audit",
        "payments.grant.push",
        f"{len(inserted)} new of {len(grants)} grants",
        __name__,
        transaction_id=payment.transaction_id,
        cosmetics=[[g.player, g.cosmetic_id] for g in inserted],
    )
    return inserted


def handle_webhook(payload: WebhookPayload) -> None:
    event = payload.webhook_type
    if isinstance(event, WebhookValidation):
        emit("info", "payments.webhook.validation", "validation webhook acknowledged", __name__, webhook_id=payload.id)
    elif isinstance(event, PaymentCompleted):
        grant_payment(event.payment)
    elif isinstance(event, UnknownWebhook):
        emit(
            "warning",
            "payments.webhook.unknown_type",
            f"Unknown Tebex webhook type: {event.unknown_type}",
            __name__,
            webhook_id=payload.id,
        )
        emit("debug", "payments.webhook.unknown_content", "webhook content", __name__, webhook_id=payload.id, content=event.content)


def restore_purchases(player: uuid.UUID, client: TebexPluginClient) -> List[str]:
    """
    Re-grant everything Tebex says the player owns.

    Returns the transaction ids behind grants that were newly inserted by
    this call, in first-seen order, without duplicates.
    """
    packages = client.active_packages(player)

    txn_by_package: Dict[int, str] = {}
    for active in packages:
        # same package bought twice: the later transaction wins
        txn_by_package[active.package.id] = active.txn_id

    if not txn_by_package:
        return []

    key = canonical_player_id(player)
    with session_scope() as session:
        by_package = _cosmetics_by_package(session, txn_by_package.keys())
        grants: Dict[int, Grant] = {}
        for package_id, txn_id in txn_by_package.items():
            for cosmetic_id in by_package.get(package_id, []):
                grants[cosmetic_id] = Grant(key, cosmetic_id, txn_id)
        if not grants:
            return []
        inserted = apply_grants(session, grants.values())

    restored = list(dict.fromkeys(g.transaction_id for g in inserted))
    emit(
        "audit",
        "payments.grant.restore",
        f"{len(inserted)} new of {len(grants)} grants",
        __name__,
        player=key,
        restored_ids=restored,
    )
    return restored
