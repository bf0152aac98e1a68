from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import copy

import structlog

from .core import PingReport, Topology
from .errors import INTERNAL_ERROR, CLIError, ErrorKind, PropagationError
from .explain import Explainer, explain_safely
from .grammar import root
from .handlers import HANDLERS, HandlerContext, HandlerOutcome
from .resolver import ResolutionError, resolve
from .session_log import SessionLogger
from .show import link_change_messages
from .state import DeviceState, Mode

logger = structlog.get_logger(__name__)


@dataclass
class CLIErrorInfo:
    kind: ErrorKind
    message: str
    token: Optional[str] = None
    position: Optional[int] = None


@dataclass
class CLIResult:
    valid: bool
    output: str = ""
    topology: Optional[Topology] = None
    prompt: str = ""
    mode_change: Optional[Mode] = None
    hostname_change: Optional[str] = None
    close_session: bool = False
    error: Optional[CLIErrorInfo] = None
    explanation: Optional[str] = None
    report: Optional[PingReport] = None


def _platform(dev: DeviceState) -> str:
    return "host" if dev.device_type == "pc" else "ios"


class CLIEngine:
    """Cisco-like CLI engine.

    Resolves one line against the active device's mode grammar, runs the
    handler on a copy of the topology and folds the result through the
    propagation engine. The caller's topology is never mutated.
    """

    def __init__(self, explainer: Optional[Explainer] = None, session_log: Optional[SessionLogger] = None):
        self.explainer = explainer
        self.session_log = session_log

    def execute(self, topology: Topology, device_id: str, line: str) -> CLIResult:
        before = topology.device(device_id)
        prompt_before = before.prompt()

        work = copy.deepcopy(topology)
        dev = work.device(device_id)
        try:
            outcome = self._run_line(work, dev, line or "", dev.mode, 0)
            if outcome is None:
                result = CLIResult(valid=True, topology=topology, prompt=prompt_before)
                self._log(device_id, prompt_before, line, result)
                return result
            work.propagate(dev.device_id, outcome.patch.interfaces, outcome.patch.routing_changed)
        except PropagationError as e:
            logger.error("propagation_failed", device=device_id, command=line, error=e.message)
            result = self._failure(topology, line, prompt_before, CLIErrorInfo(kind=ErrorKind.PROPAGATION, message=INTERNAL_ERROR), INTERNAL_ERROR)
            self._log(device_id, prompt_before, line, result)
            return result
        except CLIError as e:
            info = CLIErrorInfo(kind=e.kind, message=e.message, token=e.token, position=e.position)
            result = self._failure(topology, line, prompt_before, info, self._format_error(prompt_before, e))
            self._log(device_id, prompt_before, line, result)
            return result

        messages = link_change_messages(before, dev)
        output = "\n".join([o for o in [outcome.output] + messages if o])
        result = CLIResult(
            valid=True,
            output=output,
            topology=work,
            prompt=dev.prompt(),
            mode_change=dev.mode if dev.mode != before.mode else None,
            hostname_change=dev.hostname if dev.hostname != before.hostname else None,
            close_session=outcome.patch.close_session,
            report=outcome.report,
        )
        self._log(device_id, prompt_before, line, result)
        return result

    # ───────────────────────────── Dispatch ─────────────────────────────

    def _run_line(self, topology: Topology, dev: DeviceState, line: str, mode: Mode, column: int) -> Optional[HandlerOutcome]:
        res = resolve(line, root(mode, _platform(dev)), dev, column_offset=column)
        if res is None:
            return None
        if isinstance(res, ResolutionError):
            raise res.to_exception()

        def run_nested(text: str, col: int) -> HandlerOutcome:
            nested = self._run_line(topology, dev, text, Mode.PRIVILEGED, col)
            return nested if nested is not None else HandlerOutcome()

        ctx = HandlerContext(device=dev, topology=topology, columns=res.columns, run_line=run_nested)
        return HANDLERS[res.handler](ctx, res.args)

    # ───────────────────────────── Results ─────────────────────────────

    @staticmethod
    def _format_error(prompt: str, err: CLIError) -> str:
        if err.kind in (ErrorKind.UNRECOGNIZED, ErrorKind.INVALID_ARGUMENT) and err.column is not None:
            return " " * (len(prompt) + err.column) + "^\n" + err.message
        return err.message

    def _failure(self, topology: Topology, line: str, prompt: str, info: CLIErrorInfo, output: str) -> CLIResult:
        return CLIResult(
            valid=False,
            output=output,
            topology=topology,
            prompt=prompt,
            error=info,
            explanation=explain_safely(self.explainer, line, info.message),
        )

    def _log(self, device_id: str, prompt: str, line: str, result: CLIResult) -> None:
        if self.session_log is None:
            return
        self.session_log.add(
            "command",
            device=device_id,
            prompt=prompt,
            line=line,
            valid=result.valid,
            output=result.output,
            error=result.error.kind.value if result.error else None,
            mode=result.mode_change.value if result.mode_change else None,
        )


def execute(command_text: str, device_id: str, topology: Topology, explainer: Optional[Explainer] = None) -> CLIResult:
    return CLIEngine(explainer=explainer).execute(topology, device_id, command_text)
