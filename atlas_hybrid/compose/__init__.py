"""Component registry and slot-to-component composition."""

from .composer import ComponentAssignment, ComponentComposer, CompositionResult
from .registry import Affordance, AffordanceRegistry, RegistryEntry

__all__ = [
    "ComponentAssignment",
    "ComponentComposer",
    "CompositionResult",
    "Affordance",
    "AffordanceRegistry",
    "RegistryEntry",
]
