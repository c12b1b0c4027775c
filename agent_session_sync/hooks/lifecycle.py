"""
Provider lifecycle hook chains.

A provider registers hooks per agent name, with ``"*"`` applying to every
agent:

    provider_hooks = {
        "*": {"on_session_start": register_session},
        "claude": {"on_session_start": tag_claude_session},
    }

Chains are resolved once, when the router is built, into an ordered list:

1. the provider's wildcard hook
2. the provider's agent-specific hook, or the agent's default hook when
   the provider has no agent-specific one

Without any provider hook the agent's default hook runs alone. Each hook
receives the previous hook's return value as its first argument.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from typing import Any

WILDCARD = "*"

LifecycleHook = Callable[..., Any]
ProviderHooks = Mapping[str, Mapping[str, LifecycleHook]]


def resolve_hook_chain(
    provider_hooks: ProviderHooks | None,
    agent_name: str,
    hook_name: str,
    agent_default: LifecycleHook | None = None,
) -> list[LifecycleHook]:
    """Resolve the ordered hooks to run for one lifecycle point."""
    hooks = provider_hooks or {}
    wildcard = hooks.get(WILDCARD, {}).get(hook_name)
    specific = hooks.get(agent_name, {}).get(hook_name)

    chain: list[LifecycleHook] = []
    if wildcard is not None:
        chain.append(wildcard)
    if specific is not None:
        chain.append(specific)
    elif agent_default is not None:
        chain.append(agent_default)
    return chain


async def run_hook_chain(chain: list[LifecycleHook], value: Any, *args: Any) -> Any:
    """Run hooks in order, threading the value through the chain.

    Hooks may be plain functions or coroutine functions.

    Returns:
        The last hook's return value (``value`` for an empty chain)
    """
    for hook in chain:
        result = hook(value, *args)
        if inspect.isawaitable(result):
            result = await result
        value = result
    return value
