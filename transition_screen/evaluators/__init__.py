"""LLM-backed evaluators: greenwashing dimensions and the DNSH safeguard screen."""

from .ai_components import AIComponentEvaluator
from .safeguard import SafeguardEvaluator, rule_based_assessment

__all__ = ["AIComponentEvaluator", "SafeguardEvaluator", "rule_based_assessment"]
