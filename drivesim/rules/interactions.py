"""
Parameter Interaction Engine — Derived Values

Applies declared cross-parameter equations in declaration order. Each enabled
interaction whose source is present in the current tick writes its result to
the target key, overwriting anything already there. Two interactions that
target the same key: the later one wins.

A broken equation is logged and skipped; the remaining interactions still run.
"""

import logging
import re
from typing import Dict, Mapping, Sequence

from drivesim.expressions import ExpressionError, compile_expression

from .schemas import ParameterInteraction

logger = logging.getLogger(__name__)

SOURCE_TOKEN = "source"

_TARGET_ASSIGNMENT = re.compile(r"^\s*target\s*=(?!=)")


def strip_target_assignment(equation: str) -> str:
    """Drop an optional leading "target =" from an equation."""
    return _TARGET_ASSIGNMENT.sub("", equation, count=1)


class InteractionEngine:
    """Applies ParameterInteraction lists to value mappings."""

    def apply_one(self, interaction: ParameterInteraction, source_value: float) -> float:
        """
        Evaluate a single interaction equation.

        Raises:
            ExpressionError: If the equation is malformed or not numeric
        """
        expression = compile_expression(strip_target_assignment(interaction.equation))
        return expression.evaluate_number({SOURCE_TOKEN: source_value})

    def apply(
        self,
        interactions: Sequence[ParameterInteraction],
        values: Mapping[str, float],
    ) -> Dict[str, float]:
        """
        Apply all enabled interactions.

        Args:
            interactions: Interactions in declaration order
            values: Current parameter values (not modified)

        Returns:
            New mapping with derived targets written in
        """
        result = dict(values)

        for interaction in interactions:
            if not interaction.enabled:
                continue
            source_value = result.get(interaction.source_parameter)
            if source_value is None:
                continue
            try:
                result[interaction.target_parameter] = self.apply_one(interaction, source_value)
            except ExpressionError as e:
                logger.warning(
                    f"[Interactions] Skipping '{interaction.name or interaction.id}': {e}"
                )

        return result
