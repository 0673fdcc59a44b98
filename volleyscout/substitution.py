from typing import List, Optional, Sequence, Tuple

from volleyscout.config import DEFAULT_SUBSTITUTION_RULES, SubstitutionRules
from volleyscout.models import Player, Role, Side, SubstitutionRecord
from volleyscout.rotation import Rotation
from volleyscout.snapshot import SetSnapshot


def substitution_problem(
    rotation: Rotation,
    history: Sequence[SubstitutionRecord],
    player_out: str,
    player_in: str,
    rules: SubstitutionRules = DEFAULT_SUBSTITUTION_RULES,
) -> Optional[str]:
    """
    Return why player_in may not replace player_out, or None if the
    substitution is legal. Libero exchanges are not handled here.
    """
    if player_out not in rotation.slots:
        return f"player {player_out} is not on court"

    if player_in in rotation.slots:
        return f"player {player_in} is already on court"

    if player_in in (rotation.libero, rotation.fallback_libero):
        return f"libero {player_in} cannot enter as a regular substitute"

    if len(history) >= rules.max_substitutions:
        return "max number of substitutions was reached"

    if any(r.player_out == player_out for r in history):
        return f"player {player_out} was already replaced"

    if any(r.player_in == player_in for r in history):
        return f"player {player_in} was already a replacement"

    # player_in left the court earlier in the set
    left = next((r for r in history if r.player_out == player_in), None)
    if left is not None:
        if not rules.allow_reentry:
            return f"player {player_in} cannot re-enter"
        if left.player_in != player_out:
            return f"player {player_in} can only replace player {left.player_in}"

    # player_out came in as a substitute
    entered = next((r for r in history if r.player_in == player_out), None)
    if entered is not None and rules.allow_reentry and entered.player_out != player_in:
        return f"player {player_out} can only be replaced by player {entered.player_out}"

    return None


def libero_exchange_problem(
    rotation: Rotation,
    exchanges_done: int,
    player_out: str,
    player_in: str,
    rules: SubstitutionRules = DEFAULT_SUBSTITUTION_RULES,
) -> Optional[str]:
    if rotation.fallback_libero is None:
        return "no fallback libero available"

    if player_out != rotation.libero or player_in != rotation.fallback_libero:
        return f"libero {rotation.libero} can only be exchanged with {rotation.fallback_libero}"

    if rules.max_libero_exchanges is not None and exchanges_done >= rules.max_libero_exchanges:
        return "max number of libero exchanges was reached"

    return None


# =========================================================
# CANDIDATES
# =========================================================

def pull_out_candidates(
    snapshot: SetSnapshot,
    side: Side = Side.US,
    rules: Optional[SubstitutionRules] = None,
) -> List[Tuple[Role, str]]:
    """
    On-court players that may be substituted, ordered clockwise from the
    setter with their base role. The libero never appears: it is
    exchanged, not substituted.
    """
    rules = rules or DEFAULT_SUBSTITUTION_RULES
    rotation = snapshot.rotation(side)
    if rotation is None:
        return []

    history = snapshot.substitutions(side)
    if len(history) >= rules.max_substitutions:
        return []

    already_replaced = {r.player_out for r in history}
    return [
        (role, player_id)
        for role, player_id in rotation.players_by_role()
        if player_id not in already_replaced
    ]


def replacement_candidates(
    snapshot: SetSnapshot,
    roster: Sequence[Player],
    replaced_id: str,
    side: Side = Side.US,
    rules: Optional[SubstitutionRules] = None,
) -> List[Player]:
    rules = rules or DEFAULT_SUBSTITUTION_RULES
    rotation = snapshot.rotation(side)
    if rotation is None or replaced_id not in rotation.slots:
        return []

    history = snapshot.substitutions(side)
    involved = {r.player_out for r in history} | {r.player_in for r in history}
    slot_role = rotation.base_role_at(rotation.slots.index(replaced_id))

    candidates: List[Player] = []
    for player in roster:
        if player.deleted:
            continue
        if substitution_problem(rotation, history, replaced_id, player.id, rules) is not None:
            continue
        # a returning player takes back their own slot whatever their role
        if (
            rules.require_role_match
            and player.id not in involved
            and player.role is not None
            and player.role != slot_role
        ):
            continue
        candidates.append(player)

    return candidates


def can_exchange_libero(
    snapshot: SetSnapshot,
    side: Side = Side.US,
    rules: Optional[SubstitutionRules] = None,
) -> bool:
    rules = rules or DEFAULT_SUBSTITUTION_RULES
    rotation = snapshot.rotation(side)
    if rotation is None or rotation.libero is None:
        return False

    problem = libero_exchange_problem(
        rotation,
        snapshot.side(side).libero_exchanges,
        rotation.libero,
        rotation.fallback_libero or "",
        rules,
    )
    return problem is None
