"""
Capability orchestrator for routing requests to registered capabilities.

Handles candidate selection, the four execution modes, state merging between
steps, persistence around the run, and timing tracking.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from rich.console import Console
from tqdm import tqdm
from tqdm.asyncio import tqdm as atqdm

from ..capabilities.base import Capability
from ..capabilities.registry import CapabilityRegistry
from ..models import (
    EXECUTION_ERROR_MESSAGE,
    NO_CAPABILITY_MESSAGE,
    ExecutionMode,
    OrchestrationConfig,
    RequestContext,
    Response,
)
from ..state import StateStore

logger = logging.getLogger(__name__)
console = Console()

PROGRESS_BAR_FORMAT = "{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]"


def merge_responses(
    steps: List[tuple], is_complete: bool = True, response_type: str = "text"
) -> Response:
    """
    Aggregate step responses into one response.

    Content is joined with a blank line (empty contents skipped), metadata keys
    are prefixed with the producing capability id, and state deltas are merged
    last-write-wins in step order.

    Args:
        steps: ``(capability_id, response)`` pairs in aggregation order
        is_complete: Completion flag of the aggregate
        response_type: Content kind of the aggregate

    Returns:
        Aggregated Response
    """
    contents = []
    updated_state: Dict[str, Any] = {}
    metadata: Dict[str, Any] = {}

    for capability_id, response in steps:
        if response.content:
            contents.append(response.content)
        updated_state.update(response.updated_state)
        for key, value in response.metadata.items():
            metadata[f"{capability_id}_{key}"] = value

    metadata["executed_capabilities"] = [capability_id for capability_id, _ in steps]

    return Response(
        content="\n\n".join(contents),
        is_complete=is_complete,
        updated_state=updated_state,
        metadata=metadata,
        response_type=response_type,
    )


class CapabilityOrchestrator:
    """
    Orchestrates execution of registered capabilities for one request at a time.

    ``process`` never raises: capability errors, timeouts and unexpected
    failures all come back as a Response with ``is_complete=False``.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        state_store: Optional[StateStore] = None,
        default_config: Optional[OrchestrationConfig] = None,
        response_timeout: Optional[float] = None,
        verbose: int = 0,
    ):
        """
        Initialize orchestrator.

        Args:
            registry: CapabilityRegistry with registered capabilities
            state_store: Optional store for conversation state (None = no persistence)
            default_config: Config used when ``process`` gets none
            response_timeout: Default budget in seconds for a whole call
            verbose: Verbosity level (0=quiet, 1=info, 2=debug)
        """
        self.registry = registry
        self.state_store = state_store
        self.default_config = default_config or OrchestrationConfig()
        self.response_timeout = response_timeout
        self.verbose = verbose
        # Timings of the last completed call, replaced wholesale when a call ends
        self.capability_timings: Dict[str, float] = {}

    async def process(
        self, context: RequestContext, config: Optional[OrchestrationConfig] = None
    ) -> Response:
        """
        Route a request to the selected capabilities.

        Args:
            context: Request context (its state is hydrated, mutated and persisted)
            config: Per-call options (defaults to ``default_config``)

        Returns:
            The final or aggregated Response
        """
        config = config or self.default_config

        timings: Dict[str, float] = {}

        logger.info(
            f"Processing request {context.request_id} "
            f"(mode={config.execution_mode.value}, conversation={context.conversation_id or '-'})"
        )

        try:
            response = await self._process(context, config, timings)
        except Exception as e:
            logger.exception(f"Error processing request {context.request_id}")
            return Response.failure(EXECUTION_ERROR_MESSAGE, error=str(e))
        finally:
            self.capability_timings = timings

        logger.info(f"Completed processing request {context.request_id}")
        return response

    def process_sync(
        self, context: RequestContext, config: Optional[OrchestrationConfig] = None
    ) -> Response:
        """
        Blocking wrapper around ``process`` for synchronous callers.

        Must not be called from a running event loop.
        """
        # Create new event loop for this call to avoid cleanup issues
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        try:
            return loop.run_until_complete(self.process(context, config))
        finally:
            try:
                # Cancel all remaining tasks
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            finally:
                asyncio.set_event_loop(None)
                loop.close()

    def select_candidates(
        self, context: RequestContext, config: OrchestrationConfig
    ) -> List[Capability]:
        """
        Compute the ordered candidate list for a call.

        Explicit roles win over required tags, which win over ``can_handle``;
        excluded tags are removed last.
        """
        if config.specific_roles:
            candidates = []
            for capability_id in config.specific_roles:
                capability = self.registry.get(capability_id)
                if capability is None:
                    logger.debug(f"Requested capability '{capability_id}' is not registered")
                    continue
                candidates.append(capability)
        elif config.required_tags:
            candidates = self.registry.get_by_tags(config.required_tags)
        else:
            candidates = self.registry.get_capable(context)

        if config.excluded_tags:
            candidates = [c for c in candidates if not c.has_any_tag(config.excluded_tags)]

        return candidates

    def get_timing_summary(self) -> Dict[str, float]:
        """
        Get timing summary for last execution.

        Returns:
            Dict mapping capability id to elapsed time in seconds
        """
        return self.capability_timings.copy()

    def format_timing_summary(self) -> str:
        """
        Format timing summary as a readable string.

        Returns:
            Formatted string with timing breakdown and percentages
        """
        if not self.capability_timings:
            return "No timing data available"

        lines = []
        total = sum(self.capability_timings.values())

        # Sort by time (descending)
        for capability_id, elapsed in sorted(
            self.capability_timings.items(), key=lambda x: x[1], reverse=True
        ):
            percentage = (elapsed / total * 100) if total > 0 else 0
            lines.append(f"  • {capability_id}: {elapsed:.2f}s ({percentage:.1f}%)")

        lines.append(f"  • Total: {total:.2f}s")
        return "\n".join(lines)

    async def _process(
        self, context: RequestContext, config: OrchestrationConfig, timings: Dict[str, float]
    ) -> Response:
        if self.state_store is not None and context.conversation_id:
            self.state_store.load(context)

        candidates = self.select_candidates(context, config)
        if not candidates:
            logger.info(f"No suitable capability for request {context.request_id}")
            return Response.failure(NO_CAPABILITY_MESSAGE)

        if self.verbose > 0:
            order = " → ".join(c.capability_id for c in candidates)
            console.print(f"[cyan]Candidates: {order}[/cyan]")

        deadline = self._deadline(config)

        if config.execution_mode == ExecutionMode.SEQUENTIAL:
            response = await self._execute_sequential(
                candidates, context, config, deadline, timings
            )
        elif config.execution_mode == ExecutionMode.PARALLEL:
            response = await self._execute_parallel(
                candidates, context, config, deadline, timings
            )
        elif config.execution_mode == ExecutionMode.PIPELINE:
            response = await self._execute_pipeline(
                candidates, context, config, deadline, timings
            )
        else:
            response = await self._run_step(candidates[0], context, deadline, timings)

        context.state.update(response.updated_state)
        self._save_state(context)
        return response

    async def _execute_sequential(
        self,
        candidates: List[Capability],
        context: RequestContext,
        config: OrchestrationConfig,
        deadline: Optional[float],
        timings: Dict[str, float],
    ) -> Response:
        steps = []
        is_complete = True

        with self._progress(candidates) as pbar:
            for capability in candidates:
                pbar.set_description(f"Executing {capability.capability_id}")
                response = await self._run_step(capability, context, deadline, timings)
                context.state.update(response.updated_state)
                steps.append((capability.capability_id, response))
                pbar.update(1)

                if config.stop_on_first_failure and not response.is_complete:
                    logger.info(
                        f"Capability '{capability.capability_id}' did not complete, "
                        f"stopping sequential run"
                    )
                    is_complete = False
                    break

        return merge_responses(steps, is_complete=is_complete)

    async def _execute_parallel(
        self,
        candidates: List[Capability],
        context: RequestContext,
        config: OrchestrationConfig,
        deadline: Optional[float],
        timings: Dict[str, float],
    ) -> Response:
        semaphore = asyncio.Semaphore(config.max_concurrency)

        # Each branch works on its own copy; none observes another's state
        snapshots = [context.snapshot() for _ in candidates]

        async def bounded_step(idx: int, capability: Capability):
            async with semaphore:
                return idx, await self._run_step(capability, snapshots[idx], deadline, timings)

        tasks = [bounded_step(idx, capability) for idx, capability in enumerate(candidates)]

        if self._show_progress(candidates):
            results = []
            for coro in atqdm.as_completed(
                tasks, total=len(tasks), desc="Capabilities", bar_format=PROGRESS_BAR_FORMAT
            ):
                results.append(await coro)
        else:
            results = await asyncio.gather(*tasks)

        # Aggregate in candidate order, not completion order
        results = sorted(results, key=lambda item: item[0])
        steps = [(candidates[idx].capability_id, response) for idx, response in results]

        return merge_responses(
            steps, is_complete=all(response.is_complete for _, response in steps)
        )

    async def _execute_pipeline(
        self,
        candidates: List[Capability],
        context: RequestContext,
        config: OrchestrationConfig,
        deadline: Optional[float],
        timings: Dict[str, float],
    ) -> Response:
        last_response = None

        with self._progress(candidates) as pbar:
            for capability in candidates:
                pbar.set_description(f"Executing {capability.capability_id}")
                response = await self._run_step(capability, context, deadline, timings)
                pbar.update(1)

                context.state.update(response.updated_state)

                # Output feeds the next step's input
                if response.next_roles:
                    context.input = response.content

                last_response = response

                if response.is_complete and not response.next_roles:
                    break

                if config.stop_on_first_failure and not response.is_complete:
                    logger.info(
                        f"Capability '{capability.capability_id}' did not complete, "
                        f"stopping pipeline"
                    )
                    break

        return last_response

    async def _run_step(
        self,
        capability: Capability,
        context: RequestContext,
        deadline: Optional[float],
        timings: Dict[str, float],
    ) -> Response:
        """Execute one capability, converting errors and timeouts into failed responses."""
        capability_id = capability.capability_id
        start = time.time()

        if self.verbose > 1:
            console.print(f"[cyan]Executing capability: {capability_id}[/cyan]")

        try:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                raise asyncio.TimeoutError()
            response = await asyncio.wait_for(capability.execute(context), timeout=remaining)
        except asyncio.TimeoutError:
            logger.warning(f"Capability '{capability_id}' timed out")
            response = Response.failure(
                EXECUTION_ERROR_MESSAGE,
                error=f"Capability '{capability_id}' timed out",
                executed_capability=capability_id,
            )
        except asyncio.CancelledError:
            # Cancellation of this orchestration call itself must propagate
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            logger.warning(f"Capability '{capability_id}' was cancelled")
            response = Response.failure(
                EXECUTION_ERROR_MESSAGE,
                error=f"Capability '{capability_id}' was cancelled",
                executed_capability=capability_id,
            )
        except Exception as e:
            logger.error(f"Capability '{capability_id}' failed: {e}")
            response = Response.failure(
                EXECUTION_ERROR_MESSAGE, error=str(e), executed_capability=capability_id
            )

        # End timing
        elapsed = time.time() - start
        timings[capability_id] = timings.get(capability_id, 0.0) + elapsed

        if self.verbose > 1:
            status = "✓" if response.is_complete else "✗"
            color = "green" if response.is_complete else "yellow"
            console.print(f"[{color}]{status} {capability_id} ({elapsed:.2f}s)[/{color}]")

        return response

    def _save_state(self, context: RequestContext) -> None:
        if self.state_store is None or not context.conversation_id:
            return

        try:
            self.state_store.save(context)
        except Exception as e:
            logger.warning(
                f"Could not persist state for conversation {context.conversation_id}: {e}"
            )

    def _deadline(self, config: OrchestrationConfig) -> Optional[float]:
        timeout = config.timeout_seconds or self.response_timeout
        if not timeout or timeout <= 0:
            return None
        return time.monotonic() + timeout

    def _show_progress(self, candidates: List[Capability]) -> bool:
        return self.verbose > 0 and len(candidates) > 1

    def _progress(self, candidates: List[Capability]) -> tqdm:
        return tqdm(
            total=len(candidates),
            desc="Capabilities",
            disable=not self._show_progress(candidates),
            bar_format=PROGRESS_BAR_FORMAT,
        )
