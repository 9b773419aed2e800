"""Running query-driven evaluator commands."""

import asyncio
from collections.abc import Mapping, Sequence

from heats.config import EvaluatorSpec, InputMode
from heats.logger import logging
from heats.source.command import load_source, run_action, to_loaded_items
from heats.source.models import LoadedItem, MenuItem

logger = logging.getLogger(__name__)


async def run_single_evaluator(query: str, spec: EvaluatorSpec) -> list[MenuItem]:
    if spec.input_mode == InputMode.ARG:
        return await load_source(spec.source, extra_args=[query])
    return await load_source(spec.source, stdin_text=query + "\n")


async def run_evaluators(
    query: str,
    evaluator_names: Sequence[str],
    evaluators: Mapping[str, EvaluatorSpec],
) -> list[LoadedItem]:
    """
    Run the named evaluators concurrently against ``query``.

    Results are grouped in the order the evaluators were named.
    """
    names: list[str] = []
    for name in evaluator_names:
        if name not in evaluators:
            logger.warning("Evaluator '%s' not found in config", name)
            continue
        names.append(name)

    results = await asyncio.gather(
        *(run_single_evaluator(query, evaluators[name]) for name in names)
    )

    loaded: list[LoadedItem] = []
    for name, menu_items in zip(names, results, strict=True):
        logger.debug("Evaluator '%s' returned %d items for %r", name, len(menu_items), query)
        loaded.extend(to_loaded_items(name, f"eval:{name}", menu_items))
    return loaded


def run_evaluator_action(spec: EvaluatorSpec, item: MenuItem):
    run_action(spec.action, item.get_field(spec.field), spec.action_input_mode)
