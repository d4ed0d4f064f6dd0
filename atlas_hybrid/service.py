"""
Adaptive layout service.

Single entry point for the decision loop: a decision request (loose
intent) becomes a layout plus component composition, and feedback on
that decision becomes a recorded experience.

All collaborators (engine, registry, generator, event bus) are built
once here and passed explicitly; nothing is a module-level global.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .compose.composer import ComponentAssignment, ComponentComposer, CompositionResult
from .compose.registry import AffordanceRegistry
from .config import ServiceConfig
from .decision.engine import DecisionEngine
from .decision.outcome import FeedbackKind, Outcome, RewardShaper, confusion_penalty, parse_feedback
from .events import EventBus
from .intent import Intent, context_for, normalize_intent, vectorize
from .layout.generator import Layout, LayoutGenerator
from .learning.persistence_hooks import EnginePersistence
from .logging_config import log_event

logger = logging.getLogger(__name__)

SOURCE_OVERRIDE = "override"
SOURCE_HEURISTIC = "heuristic"


@dataclass
class Decision:
    """Result of one decision request."""
    intent: Intent
    state: List[float]
    context: str
    action: Optional[int]
    source: str
    layout: Layout
    composition: List[ComponentAssignment]
    exploration_rate: float
    latency_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layout": self.layout.to_dict(),
            "composition": [c.to_dict() for c in self.composition],
            "action": self.action,
            "state": list(self.state),
            "debugInfo": {
                "context": self.context,
                "variationParams": dict(self.layout.metadata.get("variations", {})),
                "explorationRate": self.exploration_rate,
                "source": self.source,
                "intent": self.intent.to_dict(),
            },
        }


class AdaptiveLayoutService:
    """
    Facade over intent normalization, the decision engine, layout
    generation and composition.

    decide() and feedback() run under one lock so a decision and a
    learning step never interleave.

    Raises:
        EngineInitError: From construction when the engine or its
            persistence directory cannot be built
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        engine: Optional[DecisionEngine] = None,
        registry: Optional[AffordanceRegistry] = None,
        generator: Optional[LayoutGenerator] = None,
        event_bus: Optional[EventBus] = None,
        load_state: bool = True,
    ):
        self.config = config or ServiceConfig()
        self.event_bus = event_bus or EventBus()

        if registry is None:
            registry = AffordanceRegistry()
            registry.register_defaults()
        self.registry = registry

        self.generator = generator or LayoutGenerator(max_entries=self.config.layout_cache_size)
        self.composer = ComponentComposer(self.registry)
        self.reward_shaper = RewardShaper()

        if engine is None:
            persistence = EnginePersistence(self.config.state_dir)
            engine = DecisionEngine(
                self.config.engine, persistence=persistence, event_bus=self.event_bus
            )
            if load_state:
                engine.load()
        self.engine = engine

        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def normalize(self, raw_intent: Union[Intent, Mapping[str, Any], None]) -> Intent:
        return normalize_intent(raw_intent, self.config.intent_defaults)

    def decide(
        self,
        raw_intent: Union[Intent, Mapping[str, Any], None] = None,
        override_action: Any = None,
        use_model: bool = True,
    ) -> Decision:
        """
        Produce a layout and composition for a decision request.

        Args:
            raw_intent: Intent fields; absent fields take configured defaults
            override_action: Force this action instead of asking the engine
            use_model: When False (and no override), use heuristic layout

        Returns:
            Decision
        """
        start = time.perf_counter()
        intent = self.normalize(raw_intent)
        state = vectorize(intent)
        context = context_for(intent, self.config.engine.default_context)

        with self._lock:
            if override_action is not None:
                action, source = override_action, SOURCE_OVERRIDE
            elif use_model:
                choice = self.engine.choose(state, context)
                action, source = choice.action, choice.source
            else:
                action, source = None, SOURCE_HEURISTIC

            layout = self.generator.generate(intent, action)
            composition = self.composer.compose(layout, intent)
            epsilon = self.engine.epsilon

        latency_ms = (time.perf_counter() - start) * 1000
        decision = Decision(
            intent=intent,
            state=state,
            context=context,
            action=layout.metadata.get("action"),
            source=source,
            layout=layout,
            composition=composition,
            exploration_rate=epsilon,
            latency_ms=latency_ms,
        )
        log_event(
            logger,
            "decision",
            f"{layout.structure.type} with {len(composition)} components via {source}",
            subsystem="service",
            context=context,
            action=decision.action,
            latency_ms=latency_ms,
        )
        return decision

    def compose_result(self, decision: Decision) -> CompositionResult:
        """Wrap a decision's composition for validation and debugging."""
        return CompositionResult(
            list(decision.composition),
            decision.layout,
            {"context": decision.context, "action": decision.action},
        )

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def feedback(
        self,
        action: int,
        reward: Optional[float] = None,
        prior_state: Optional[Sequence[float]] = None,
        context: Optional[str] = None,
        next_state: Optional[Sequence[float]] = None,
        terminal: bool = False,
        kind: Union[FeedbackKind, str, bool, None] = None,
        intent: Union[Intent, Mapping[str, Any], None] = None,
        metrics: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """
        Record feedback on a previous decision.

        The reward is taken from `reward`, else from `kind`
        (like/neutral/dislike), else from engagement `metrics` through the
        per-domain reward. When `prior_state` is omitted it is rebuilt
        from `intent`.

        Returns:
            True if an experience was recorded
        """
        normalized = self.normalize(intent) if (intent is not None or prior_state is None) else None
        if prior_state is None:
            prior_state = vectorize(normalized)
        if context is None:
            context = (
                context_for(normalized, self.config.engine.default_context)
                if normalized is not None
                else self.config.engine.default_context
            )

        if reward is None:
            parsed = parse_feedback(kind)
            if parsed is None and not metrics:
                logger.warning("Feedback ignored: no reward, feedback kind or metrics")
                return False
            reward = self.reward_shaper.evaluate(Outcome(feedback=parsed, metrics=metrics), context)

        with self._lock:
            recorded = self.engine.record_experience(
                prior_state, action, reward, next_state, terminal, context
            )

        if recorded:
            log_event(
                logger,
                "feedback",
                f"reward={float(reward):.3f}",
                subsystem="service",
                context=context,
                action=action,
            )
        return recorded

    def report_confusion(
        self,
        action: int,
        score: float,
        severity: int,
        prior_state: Optional[Sequence[float]] = None,
        context: Optional[str] = None,
        intent: Union[Intent, Mapping[str, Any], None] = None,
    ) -> bool:
        """
        Apply the confusion penalty for an action when it is severe enough.

        Returns:
            True if a penalty experience was recorded
        """
        penalty = confusion_penalty(score, severity)
        if penalty == 0.0:
            return False
        logger.info(f"High confusion penalty {penalty:.3f} for action {action}")
        return self.feedback(action, penalty, prior_state, context, intent=intent)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def set_bandit_algorithm(self, name: str) -> bool:
        return self.engine.set_bandit_algorithm(name)

    def stats(self) -> Dict[str, Any]:
        return {
            "engine": self.engine.get_stats(),
            "registry": self.registry.get_stats(),
            "events": self.event_bus.get_stats(),
            "layout_cache_size": self.generator.cache_size,
        }

    def reset(self) -> None:
        """Reset learning state and the layout cache, then persist."""
        with self._lock:
            self.engine.reset()
            self.generator.clear_cache()
            self.engine.save()

    def save(self) -> bool:
        return self.engine.save()
