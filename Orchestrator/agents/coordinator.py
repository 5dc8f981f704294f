"""
coordinator.py

Dispatch coordinator: receives task requests from the frontline agent and
routes them to the registered specialist for the addressed role.

The coordinator never trusts an earlier boundary check; every request is
re-validated against the context registry before a task is opened. Each
task is attempted exactly once. Failures are recorded on the task and
never raised to the caller.

A task chain runs an ordered plan of steps from ``TASK_CHAINS``: each step
is opened (and boundary-checked) only after the previous one completed,
and the chain stops at the first step that does not.

Lock order: the coordinator never calls into the registry while holding
``self._lock``. The registry calls ``on_context_flush`` and ``halt`` while
holding its own lock.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Iterable, List, Optional, Tuple

from Orchestrator.agents.base import BaseAgent, SpecialistAgent
from Orchestrator.config import (
    DISPATCH_TIMEOUT_SECONDS,
    TASK_CHAINS,
    TASK_HISTORY_LIMIT,
)
from Orchestrator.core.context_registry import ContextRegistry
from Orchestrator.errors import ConfigurationError, DispatchFailure
from Orchestrator.state import (
    AgentResult,
    AgentRole,
    AgentStatus,
    AgentTask,
    BreachEvent,
    TaskChain,
    TaskDescriptor,
    TaskStatus,
)

logger = logging.getLogger(__name__)

UNKNOWN_AGENT_ERROR = "unknown agent"


class DispatchCoordinator(BaseAgent):
    """Routes AgentTasks to specialists keyed by role."""

    role = AgentRole.COORDINATOR
    name = "Coordinator"
    description = (
        "Routes background tasks to specialists. Never speaks to the user."
    )

    def __init__(
        self,
        registry: ContextRegistry,
        timeout_seconds: float = DISPATCH_TIMEOUT_SECONDS,
        history_limit: int = TASK_HISTORY_LIMIT,
        chain_plans: Optional[Dict[str, List[Tuple[str, str]]]] = None,
    ) -> None:
        super().__init__()
        self._registry = registry
        self._timeout = timeout_seconds
        self._history_limit = history_limit
        self._chain_plans = TASK_CHAINS if chain_plans is None else chain_plans
        self._routes: Dict[AgentRole, SpecialistAgent] = {}
        self._tasks: List[AgentTask] = []
        self._chains: List[TaskChain] = []
        self._stale: set = set()
        self._halted = False
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._specialist_pool: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Routing table
    # ------------------------------------------------------------------

    def register_agent(self, agent: SpecialistAgent) -> None:
        if not isinstance(agent, SpecialistAgent):
            raise TypeError(
                f"Only SpecialistAgent instances can be routed, got {type(agent).__name__}"
            )
        with self._lock:
            self._routes[agent.role] = agent
        logger.info("Coordinator registered agent: %s (%s)", agent.name, agent.role.value)

    def registered_roles(self) -> List[AgentRole]:
        with self._lock:
            return list(self._routes)

    def validate_routes(self, roles: Iterable[AgentRole]) -> None:
        """Fail fast when any role in ``roles`` has no registered specialist."""
        registered = set(self.registered_roles())
        missing = sorted(
            AgentRole(r).value for r in roles if AgentRole(r) not in registered
        )
        if missing:
            raise ConfigurationError(
                f"No specialist registered for role(s): {', '.join(missing)}"
            )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self,
        to_agent: AgentRole,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]] = None,
        from_agent: AgentRole = AgentRole.FRONTLINE,
    ) -> AgentTask:
        """Open, run and close one task synchronously."""
        task = self._open_task(to_agent, case_id, kind, payload, from_agent)
        if task.status == TaskStatus.PENDING:
            self._execute(task)
        return task

    def submit(
        self,
        to_agent: AgentRole,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]] = None,
        from_agent: AgentRole = AgentRole.FRONTLINE,
    ) -> "Future[AgentTask]":
        """Validate and open the task now; run it on the background worker."""
        task = self._open_task(to_agent, case_id, kind, payload, from_agent)
        if task.status != TaskStatus.PENDING:
            done: "Future[AgentTask]" = Future()
            done.set_result(task)
            return done
        return self._get_executor().submit(self._execute, task)

    # ------------------------------------------------------------------
    # Task chains
    # ------------------------------------------------------------------

    def run_chain(
        self,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> TaskChain:
        """Open and run every step of the ``kind`` chain synchronously."""
        chain, first = self._open_chain(case_id, kind, payload)
        if first is not None:
            self._run_chain(chain, first)
        return chain

    def submit_chain(
        self,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> "Future[TaskChain]":
        """Open the chain and its first step now; run it on the background worker."""
        chain, first = self._open_chain(case_id, kind, payload)
        if first is None:
            done: "Future[TaskChain]" = Future()
            done.set_result(chain)
            return done
        return self._get_executor().submit(self._run_chain, chain, first)

    def _open_chain(
        self,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]],
    ) -> Tuple[TaskChain, Optional[AgentTask]]:
        steps = self._chain_plans.get(kind, [])
        chain = TaskChain(
            case_id=case_id,
            kind=kind,
            plan=[
                TaskDescriptor(
                    to_agent=AgentRole(role), kind=step, payload=dict(payload or {})
                )
                for role, step in steps
            ],
        )
        with self._lock:
            self._chains.append(chain)

        if not chain.plan:
            self._close_chain(chain, error=f"unknown task chain: {kind}")
            return chain, None

        first = self._open_step(chain)
        if first.status != TaskStatus.PENDING:
            self._close_chain(chain, error=f"step 1 ({first.kind}) refused: {first.error}")
            return chain, None
        logger.info("Coordinator opened chain %s: %s (%d steps)", chain.id, kind, len(chain.plan))
        return chain, first

    def _open_step(self, chain: TaskChain) -> AgentTask:
        step = chain.plan[chain.current_step]
        task = self._open_task(step.to_agent, chain.case_id, step.kind, step.payload, self.role)
        with self._lock:
            chain.task_ids.append(task.id)
        return task

    def _run_chain(self, chain: TaskChain, task: AgentTask) -> TaskChain:
        with self._lock:
            if chain.status == TaskStatus.PENDING:
                chain.advance(TaskStatus.IN_PROGRESS)

        while True:
            self._execute(task)
            if task.status != TaskStatus.COMPLETED:
                self._close_chain(
                    chain,
                    error=(
                        f"step {chain.current_step + 1} ({task.kind}) "
                        f"{task.status.value}: {task.error}"
                    ),
                )
                return chain

            with self._lock:
                chain.current_step += 1
                finished = chain.current_step >= len(chain.plan)
            if finished:
                self._close_chain(chain)
                return chain

            # A switch between steps ends the chain without a breach.
            if not self._registry.is_active(chain.case_id):
                self._close_chain(chain, error="context switched during chain")
                return chain

            task = self._open_step(chain)

    def _close_chain(self, chain: TaskChain, error: Optional[str] = None) -> None:
        with self._lock:
            if chain.is_terminal:
                return
            if error is None:
                chain.advance(TaskStatus.COMPLETED)
            else:
                chain.advance(TaskStatus.FAILED, error=error)
        if error is None:
            logger.info("Chain %s (%s) completed", chain.id, chain.kind)
        else:
            logger.warning("Chain %s (%s) failed: %s", chain.id, chain.kind, error)

    def _open_task(
        self,
        to_agent: AgentRole,
        case_id: str,
        kind: str,
        payload: Optional[Dict[str, Any]],
        from_agent: AgentRole,
    ) -> AgentTask:
        task = AgentTask(
            from_agent=AgentRole(from_agent),
            to_agent=AgentRole(to_agent),
            case_id=case_id,
            kind=kind,
            payload=dict(payload or {}),
        )
        # Checked before the task is recorded, so the breach response
        # triggered by a failed boundary check cannot touch it.
        refusal = self._refusal(task)
        with self._lock:
            if refusal is None and self._halted:
                refusal = (TaskStatus.BLOCKED, "dispatch halted after breach")
            if refusal is not None:
                task.advance(refusal[0], error=refusal[1])
            self._tasks.append(task)

        if refusal is not None:
            logger.warning("Task %s (%s) refused: %s", task.id, kind, task.error)
            return task

        if not self._registry.is_active(case_id):
            # Switched between the boundary check and recording the task.
            self._advance(task, TaskStatus.BLOCKED, error="context switched before dispatch")
            return task

        logger.info("Coordinator opened task %s: %s -> %s", task.id, kind, task.to_agent.value)
        return task

    def _refusal(self, task: AgentTask) -> Optional[Tuple[TaskStatus, str]]:
        """Terminal status and error for a task that must not run, else ``None``."""
        with self._lock:
            halted = self._halted
            agent = self._routes.get(task.to_agent)

        if halted:
            return TaskStatus.BLOCKED, "dispatch halted after breach"

        if not self._registry.enforce_boundary(task.case_id, self.role):
            return (
                TaskStatus.FAILED,
                f"boundary violation: case {task.case_id} is not active",
            )

        if self._registry.is_locked(task.case_id):
            self._registry.record_validation_failure(
                self.role,
                task.case_id,
                f"Task {task.kind} addressed to locked case {task.case_id}",
            )
            return TaskStatus.FAILED, "case is locked"

        if agent is None:
            return TaskStatus.FAILED, UNKNOWN_AGENT_ERROR
        return None

    def _execute(self, task: AgentTask) -> AgentTask:
        with self._lock:
            if task.status != TaskStatus.PENDING:
                # Blocked by a context flush or a halt while queued.
                return task
            agent = self._routes.get(task.to_agent)
            task.advance(TaskStatus.IN_PROGRESS)
            if self.status != AgentStatus.BLOCKED:
                self.status = AgentStatus.ACTIVE

        try:
            if agent is None:
                raise DispatchFailure(UNKNOWN_AGENT_ERROR)
            result = self._invoke(agent, task)
            if result.error:
                raise DispatchFailure(result.error)
        except DispatchFailure as exc:
            logger.warning("Task %s failed: %s", task.id, exc)
            self._finish(task, error=str(exc))
        except Exception as exc:
            logger.exception("Specialist %s raised on task %s", task.to_agent.value, task.id)
            self._finish(task, error=f"{type(exc).__name__}: {exc}")
        else:
            self._finish(task, result=result.model_dump())
        return task

    def _invoke(self, agent: SpecialistAgent, task: AgentTask) -> AgentResult:
        if self._timeout <= 0:
            return agent.invoke(task)
        future = self._get_specialist_pool().submit(agent.invoke, task)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeout:
            future.cancel()
            raise DispatchFailure(f"timed out after {self._timeout:g}s") from None

    def _finish(
        self,
        task: AgentTask,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            if task.id in self._stale:
                self._stale.discard(task.id)
                result, error = None, "context switched during execution; result discarded"
            if error is None:
                task.advance(TaskStatus.COMPLETED, result=result)
            else:
                task.advance(TaskStatus.FAILED, error=error)
            self.last_activity = task.completed_at or self.last_activity
            if self.status != AgentStatus.BLOCKED:
                self.status = AgentStatus.IDLE if error is None else AgentStatus.ERROR
        logger.info("Task %s finished: %s", task.id, task.status.value)

    def _advance(self, task: AgentTask, status: TaskStatus, **kwargs: Any) -> bool:
        with self._lock:
            if task.is_terminal:
                return False
            task.advance(status, **kwargs)
            return True

    # ------------------------------------------------------------------
    # Registry callbacks
    # ------------------------------------------------------------------

    def on_context_flush(self, previous_case_id: Optional[str], new_case_id: str) -> None:
        """Barrier: nothing opened under another case may complete afterwards."""
        with self._lock:
            for task in self._tasks:
                if task.case_id == new_case_id:
                    continue
                if task.status == TaskStatus.PENDING:
                    task.advance(
                        TaskStatus.BLOCKED, error="context switched before dispatch"
                    )
                elif task.status == TaskStatus.IN_PROGRESS:
                    self._stale.add(task.id)
        super().on_context_flush(previous_case_id, new_case_id)

    def halt(self, breach: Optional[BreachEvent] = None) -> None:
        """Stop all further dispatch for this process."""
        with self._lock:
            self._halted = True
            for task in self._tasks:
                if task.status == TaskStatus.PENDING:
                    task.advance(TaskStatus.BLOCKED, error="dispatch halted after breach")
        self.block()
        logger.critical(
            "Dispatch halted%s", f" by breach {breach.id}" if breach is not None else ""
        )

    @property
    def halted(self) -> bool:
        with self._lock:
            return self._halted

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_active_task_chains(self) -> List[AgentTask]:
        """In-flight tasks plus the most recent finished ones, oldest first."""
        with self._lock:
            finished = [t for t in self._tasks if t.is_terminal]
            recent = {t.id for t in finished[-self._history_limit:]} if self._history_limit > 0 else set()
            return [
                t.model_copy(deep=True)
                for t in self._tasks
                if not t.is_terminal or t.id in recent
            ]

    def get_task_history(self, case_id: str) -> List[AgentTask]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._tasks if t.case_id == case_id]

    def get_task_chains(self, case_id: Optional[str] = None) -> List[TaskChain]:
        with self._lock:
            return [
                c.model_copy(deep=True)
                for c in self._chains
                if case_id is None or c.case_id == case_id
            ]

    def capabilities(self) -> List[str]:
        return [
            "Task routing",
            "Task chains",
            "Boundary re-validation",
            "Context-switch barrier",
        ]

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="dispatch"
                )
            return self._executor

    def _get_specialist_pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._specialist_pool is None:
                self._specialist_pool = ThreadPoolExecutor(
                    max_workers=4, thread_name_prefix="specialist"
                )
            return self._specialist_pool

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            pools = [p for p in (self._executor, self._specialist_pool) if p is not None]
            self._executor = None
            self._specialist_pool = None
        for pool in pools:
            pool.shutdown(wait=wait)
