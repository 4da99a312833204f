"""Participant journeys: what card movements during a sort reveal.

A journey is one participant's ordered stream of ``CardMovement`` events.
Movements are always re-sorted by ``movement_index`` before analysis; the
capture UI usually sends them in order, but nothing here relies on it.

Sessions are split into four phases by *elapsed time*, not by event count:

==============  ==================
initial         0% – 20%
exploration     (20% – 70%]
refinement      (70% – 90%]
finalization    (90% – 100%]
==============  ==================

Phases with no movements are left out.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sortlens.analysis.metrics import categorical_variance, mean, safe_ratio
from sortlens.analysis.models import (
    AverageJourney,
    ConvergencePattern,
    JourneyPhase,
    JourneyStatistics,
    MovementPattern,
    ParticipantJourney,
    PhaseSummary,
    StudyJourneyAnalysis,
    TrendPoint,
)
from sortlens.analysis.trend import DEFAULT_SLOPE_THRESHOLD, calculate_trend
from sortlens.errors import EmptyMovementSetError, NoJourneysError
from sortlens.models import CardMovement

logger = logging.getLogger(__name__)

PHASE_INITIAL = "initial"
PHASE_EXPLORATION = "exploration"
PHASE_REFINEMENT = "refinement"
PHASE_FINALIZATION = "finalization"

PHASE_ORDER = (PHASE_INITIAL, PHASE_EXPLORATION, PHASE_REFINEMENT, PHASE_FINALIZATION)

# Elapsed-time fractions where each phase ends.
_INITIAL_END = 0.2
_EXPLORATION_END = 0.7
_REFINEMENT_END = 0.9

_PHASE_DESCRIPTIONS = {
    PHASE_INITIAL: "Initial card placement and category exploration",
    PHASE_EXPLORATION: "Active sorting and category development",
    PHASE_REFINEMENT: "Category refinement and optimization",
    PHASE_FINALIZATION: "Final adjustments and completion",
}

DEFAULT_HESITATION_THRESHOLD = 2  # a card moved more than this many times
DEFAULT_PATTERN_MIN_FREQUENCY = 2
DEFAULT_TOP_PATTERNS = 10
DEFAULT_TOP_PROBLEMATIC_CARDS = 10
DEFAULT_CONSENSUS_MOVE_FRACTION = 0.3


def sort_movements(movements: Sequence[CardMovement]) -> list[CardMovement]:
    """Movements ordered by ``movement_index`` (stable for duplicates)."""
    return sorted(movements, key=lambda m: m.movement_index)


def group_by_card(movements: Sequence[CardMovement]) -> dict[str, list[CardMovement]]:
    """Movements per card id, preserving order and first-seen card order."""
    by_card: dict[str, list[CardMovement]] = {}
    for move in movements:
        by_card.setdefault(move.card_id, []).append(move)
    return by_card


# ---------------------------------------------------------------------------
# Single participant
# ---------------------------------------------------------------------------


def analyze_participant_journey(
    movements: Sequence[CardMovement],
    participant_id: str | None = None,
    *,
    hesitation_threshold: int = DEFAULT_HESITATION_THRESHOLD,
) -> ParticipantJourney:
    """Reconstruct one participant's session from their movements.

    Args:
        movements: The participant's movement events, in any order.
        participant_id: Defaults to the id on the first movement.
        hesitation_threshold: A card moved more than this many times counts
            as one hesitation event.

    Raises:
        EmptyMovementSetError: If *movements* is empty.
    """
    if not movements:
        raise EmptyMovementSetError(participant_id)

    ordered = sort_movements(movements)
    if participant_id is None:
        participant_id = ordered[0].participant_id

    timestamps = [m.timestamp for m in ordered]
    start_time = min(timestamps)
    end_time = max(timestamps)
    total_duration = end_time - start_time

    final_state = {m.card_id: m.to_category for m in ordered}
    by_card = group_by_card(ordered)
    histories = {card_id: [m.to_category for m in moves] for card_id, moves in by_card.items()}

    undo_redo = 0
    for categories in histories.values():
        for i in range(1, len(categories)):
            if categories[i] in categories[:i]:
                undo_redo += 1

    hesitations = sum(1 for moves in by_card.values() if len(moves) > hesitation_threshold)

    phases = segment_phases(ordered, start_time, end_time)
    decision_time = phases[-1].end_time - phases[0].start_time if phases else total_duration

    return ParticipantJourney(
        participant_id=participant_id,
        session_id=ordered[0].session_id,
        start_time=start_time,
        end_time=end_time,
        total_duration=total_duration,
        movements=ordered,
        final_state=final_state,
        card_histories=histories,
        statistics=JourneyStatistics(
            total_moves=len(ordered),
            unique_cards_moved_count=len(by_card),
            average_moves_per_card=safe_ratio(len(ordered), len(by_card)),
            undo_redo_count=undo_redo,
            hesitation_events=hesitations,
            decision_time=decision_time,
            phases=phases,
        ),
    )


def segment_phases(
    movements: Sequence[CardMovement],
    start_time: float,
    end_time: float,
) -> list[JourneyPhase]:
    """Split a session into elapsed-time phases.

    The initial phase ends at its last movement; exploration and refinement
    span their full windows; finalization ends at the session end.  When the
    whole session happens at one instant every movement is initial.
    """
    if not movements:
        return []

    duration = end_time - start_time
    initial_cut = start_time + duration * _INITIAL_END
    exploration_cut = start_time + duration * _EXPLORATION_END
    refinement_cut = start_time + duration * _REFINEMENT_END

    phases: list[JourneyPhase] = []

    initial = [m for m in movements if m.timestamp <= initial_cut]
    if initial:
        last = max(m.timestamp for m in initial)
        phases.append(_phase(PHASE_INITIAL, start_time, last, initial))

    exploration = [m for m in movements if initial_cut < m.timestamp <= exploration_cut]
    if exploration:
        phases.append(_phase(PHASE_EXPLORATION, initial_cut, exploration_cut, exploration))

    refinement = [m for m in movements if exploration_cut < m.timestamp <= refinement_cut]
    if refinement:
        phases.append(_phase(PHASE_REFINEMENT, exploration_cut, refinement_cut, refinement))

    finalization = [m for m in movements if m.timestamp > refinement_cut]
    if finalization:
        phases.append(_phase(PHASE_FINALIZATION, refinement_cut, end_time, finalization))

    return phases


def _phase(
    name: str,
    start: float,
    end: float,
    movements: list[CardMovement],
) -> JourneyPhase:
    return JourneyPhase(
        phase=name,
        start_time=start,
        end_time=end,
        duration=end - start,
        movement_count=len(movements),
        cards_affected=list(dict.fromkeys(m.card_id for m in movements)),
        description=_PHASE_DESCRIPTIONS[name],
    )


# ---------------------------------------------------------------------------
# Whole study
# ---------------------------------------------------------------------------


def analyze_study_journeys(
    journeys: Sequence[ParticipantJourney],
    *,
    hesitation_threshold: int = DEFAULT_HESITATION_THRESHOLD,
    pattern_min_frequency: int = DEFAULT_PATTERN_MIN_FREQUENCY,
    top_patterns: int = DEFAULT_TOP_PATTERNS,
    top_problematic_cards: int = DEFAULT_TOP_PROBLEMATIC_CARDS,
    consensus_move_fraction: float = DEFAULT_CONSENSUS_MOVE_FRACTION,
    trend_slope_threshold: float = DEFAULT_SLOPE_THRESHOLD,
) -> StudyJourneyAnalysis:
    """Aggregate journeys across participants.

    Raises:
        NoJourneysError: If *journeys* is empty.
    """
    if not journeys:
        raise NoJourneysError()

    total = len(journeys)
    average = AverageJourney(
        duration=mean([j.total_duration for j in journeys]),
        movements=mean([j.statistics.total_moves for j in journeys]),
        hesitation_rate=mean([j.statistics.hesitation_events for j in journeys]),
        refinement_rate=mean(
            [j.statistics.undo_redo_count / max(j.statistics.total_moves, 1) for j in journeys]
        ),
    )

    # Regrouped from movements; journeys may come from other callers
    grouped = [group_by_card(sort_movements(j.movements)) for j in journeys]

    # Trends run over sessions in start order
    chronological = sorted(journeys, key=lambda j: j.start_time)
    movement_trend = calculate_trend(
        [TrendPoint(value=j.statistics.total_moves, date=j.start_time) for j in chronological],
        slope_threshold=trend_slope_threshold,
    )
    hesitation_trend = calculate_trend(
        [TrendPoint(value=j.statistics.hesitation_events, date=j.start_time) for j in chronological],
        slope_threshold=trend_slope_threshold,
    )

    logger.debug("Journey analysis over %d participants", total)

    return StudyJourneyAnalysis(
        total_participants=total,
        average_journey=average,
        common_movement_patterns=_movement_patterns(
            grouped, min_frequency=pattern_min_frequency, top_n=top_patterns
        ),
        problematic_cards=_problematic_cards(
            grouped, threshold=hesitation_threshold, top_n=top_problematic_cards
        ),
        consensus_cards=_consensus_cards(grouped, total, consensus_move_fraction),
        convergence_analysis=_convergence(grouped),
        phase_analysis=_phase_analysis(journeys),
        movement_trend=movement_trend,
        hesitation_trend=hesitation_trend,
    )


def _movement_patterns(
    grouped: list[dict[str, list[CardMovement]]],
    *,
    min_frequency: int,
    top_n: int,
) -> list[MovementPattern]:
    """Recurring per-card trajectories, most frequent first."""
    counts: dict[str, int] = {}
    card_ids: dict[str, dict[str, None]] = {}
    durations: dict[str, list[float]] = {}

    for by_card in grouped:
        for card_id, moves in by_card.items():
            if len(moves) < 2:
                continue
            trajectory = " → ".join(m.to_category for m in moves)
            signature = f"{len(moves)} moves: {trajectory}"
            counts[signature] = counts.get(signature, 0) + 1
            card_ids.setdefault(signature, {})[card_id] = None
            durations.setdefault(signature, []).append(moves[-1].timestamp - moves[0].timestamp)

    ranked = sorted(
        ((sig, n) for sig, n in counts.items() if n >= min_frequency),
        key=lambda item: item[1],
        reverse=True,
    )[:top_n]

    return [
        MovementPattern(
            pattern=sig,
            frequency=n,
            description=(
                f"Pattern occurred {n} times across {len(card_ids[sig])} different cards"
            ),
            card_ids=list(card_ids[sig]),
            avg_duration=mean(durations[sig]),
        )
        for sig, n in ranked
    ]


def _problematic_cards(
    grouped: list[dict[str, list[CardMovement]]],
    *,
    threshold: int,
    top_n: int,
) -> list[str]:
    """Cards most participants hesitated over."""
    hesitated: dict[str, int] = {}
    for by_card in grouped:
        for card_id, moves in by_card.items():
            if len(moves) > threshold:
                hesitated[card_id] = hesitated.get(card_id, 0) + 1
    ranked = sorted(hesitated.items(), key=lambda item: item[1], reverse=True)
    return [card_id for card_id, _ in ranked[:top_n]]


def _consensus_cards(
    grouped: list[dict[str, list[CardMovement]]],
    total: int,
    fraction: float,
) -> list[str]:
    """Cards moved by fewer than *fraction* of participants."""
    moved_by: dict[str, int] = {}
    for by_card in grouped:
        for card_id in by_card:
            moved_by[card_id] = moved_by.get(card_id, 0) + 1
    return [card_id for card_id, n in moved_by.items() if n < total * fraction]


def _convergence(grouped: list[dict[str, list[CardMovement]]]) -> list[ConvergencePattern]:
    """Per-card convergence from first to last placement, most convergent first."""
    trajectories: dict[str, list[list[str]]] = {}
    card_text: dict[str, str] = {}
    for by_card in grouped:
        for card_id, moves in by_card.items():
            trajectories.setdefault(card_id, []).append([m.to_category for m in moves])
            card_text[card_id] = moves[0].card_text

    patterns: list[ConvergencePattern] = []
    for card_id, paths in trajectories.items():
        initial_variance = categorical_variance(p[0] for p in paths)
        final_variance = categorical_variance(p[-1] for p in paths)
        score = 0.0
        if initial_variance > 0:
            score = max(0.0, (initial_variance - final_variance) / initial_variance * 100)
        patterns.append(
            ConvergencePattern(
                card_id=card_id,
                card_text=card_text[card_id] or card_id,
                initial_variance=initial_variance,
                final_variance=final_variance,
                convergence_score=score,
                movement_trajectory=list(dict.fromkeys(c for p in paths for c in p)),
            )
        )

    patterns.sort(key=lambda p: p.convergence_score, reverse=True)
    return patterns


def _phase_analysis(journeys: Sequence[ParticipantJourney]) -> dict[str, PhaseSummary]:
    """Mean duration and movement count per phase, over journeys that reached it."""
    durations: dict[str, list[float]] = {name: [] for name in PHASE_ORDER}
    movements: dict[str, list[float]] = {name: [] for name in PHASE_ORDER}
    for journey in journeys:
        for phase in journey.statistics.phases:
            durations[phase.phase].append(phase.duration)
            movements[phase.phase].append(phase.movement_count)

    return {
        name: PhaseSummary(
            average_duration=mean(durations[name]),
            movement_rate=mean(movements[name]),
            participant_count=len(durations[name]),
        )
        for name in PHASE_ORDER
    }
