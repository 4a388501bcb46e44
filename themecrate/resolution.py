"""
Permission resolution state machine.

CHECKING probes every selected path. CLEAN hands over to the backup. BLOCKED
moves to CHOOSING, where the user either re-runs the tool with elevated
privileges (the selection and name travel along as arguments) or gets chmod
commands for the blocked paths and retries once they have run them.
"""
import shlex
import shutil
import subprocess
import sys
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .audit import AuditLogger
from .clipboard import offer_text
from .errors import EscalationFailedError, EscalationUnavailableError, ResolutionError
from .host import HostEnv
from .models import AccessReport, PathAccess, ResolutionChoice, ResumeState, Settings, Strategy
from .probe import probe
from .selection import SelectionState
from .utils import unique_paths


class ResolutionState(str, Enum):
    CHECKING = "checking"
    CLEAN = "clean"
    BLOCKED = "blocked"
    CHOOSING = "choosing"
    ESCALATING = "escalating"
    COMMANDS_GENERATED = "commands_generated"
    ABORTED = "aborted"
    DELEGATED = "delegated"  # the elevated child finished the job

TERMINAL_STATES = {ResolutionState.CLEAN, ResolutionState.ABORTED, ResolutionState.DELEGATED}

def selected_paths(selection: SelectionState, host: HostEnv) -> List[Path]:
    """Union of the source paths of every selected entry, re-resolved now."""
    paths: List[Path] = []
    for entry in selection.selected_entries():
        paths.extend(entry.spec.source_paths(host, entry.detected.value))
    return unique_paths(paths)

def find_elevator(elevators: List[str], which: Callable[[str], Optional[str]] = shutil.which) -> Optional[str]:
    for name in elevators:
        found = which(name)
        if found:
            return found
    return None

def remediation_commands(blocked: List[PathAccess], elevator: str = "sudo") -> List[str]:
    """
    One recursive read-grant per blocked path, quoted for the shell. A path
    hidden behind a closed parent first gets that parent opened for traversal.
    """
    prefix = Path(elevator).name
    commands: List[str] = []
    for entry in blocked:
        if entry.blocker is not None and entry.blocker in entry.path.parents:
            commands.append(f"{prefix} chmod a+x -- {shlex.quote(str(entry.blocker))}")
        commands.append(f"{prefix} chmod -R a+rX -- {shlex.quote(str(entry.path))}")
    return list(dict.fromkeys(commands))

def escalation_argv(elevator: str, resume: ResumeState) -> List[str]:
    return [elevator, sys.executable, "-m", "themecrate.cli", "create", "--resume", resume.encode()]


class ResolutionEngine:
    def __init__(
        self,
        selection: SelectionState,
        name: str,
        root: Path,
        host: HostEnv,
        settings: Optional[Settings] = None,
        escalated: bool = False,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
        offer: Callable[..., bool] = offer_text,
        audit: Optional[AuditLogger] = None,
    ):
        self.selection = selection
        self.name = name
        self.root = Path(root)
        self.host = host
        self.settings = settings or Settings()
        self.escalated = escalated
        self._runner = runner
        self._which = which
        self._offer = offer
        self._audit = audit

        self.state = ResolutionState.CHECKING
        self.report: Optional[AccessReport] = None
        self.blocked: List[PathAccess] = []
        self.commands: List[str] = []
        self.error: Optional[ResolutionError] = None
        self.child_returncode: Optional[int] = None

    def _transition(self, new_state: ResolutionState, **details) -> ResolutionState:
        if self._audit is not None:
            self._audit.log("resolution_transition", source=self.state.value, target=new_state.value, **details)
        self.state = new_state
        return new_state

    def snapshot(self) -> ResumeState:
        selected = list(self.selection.selected_entries())
        return ResumeState(
            name=self.name,
            root=str(self.root),
            selected=[e.spec.id for e in selected],
            home=str(self.host.home),
            values={e.spec.id: e.detected.value for e in selected if e.detected.value},
            summaries={e.spec.id: e.detected.summary for e in selected if e.detected.summary},
        )

    def make_choice(self, strategy: Strategy) -> ResolutionChoice:
        return ResolutionChoice(strategy=strategy, resume=self.snapshot())

    @property
    def can_escalate(self) -> bool:
        return not (self.escalated or self.host.is_elevated)

    def check(self) -> ResolutionState:
        """Probe the selected paths afresh and move to CLEAN or CHOOSING."""
        if self.state != ResolutionState.CHECKING:
            raise ResolutionError(f"Cannot check permissions from state '{self.state.value}'")

        self.report = probe(selected_paths(self.selection, self.host), self.host)
        self.blocked = self.report.inaccessible
        if self._audit is not None:
            self._audit.log("probe", paths=len(self.report.entries), blocked=[str(b.path) for b in self.blocked])

        if not self.blocked:
            return self._transition(ResolutionState.CLEAN)
        self._transition(ResolutionState.BLOCKED, blocked=len(self.blocked))
        return self._transition(ResolutionState.CHOOSING)

    def choose(self, choice: ResolutionChoice) -> ResolutionState:
        if self.state != ResolutionState.CHOOSING:
            raise ResolutionError(f"No resolution choice expected in state '{self.state.value}'")

        if choice.strategy == Strategy.ESCALATE:
            self._transition(ResolutionState.ESCALATING)
            return self._escalate(choice.resume)
        if choice.strategy == Strategy.COMMANDS:
            self._transition(ResolutionState.COMMANDS_GENERATED)
            self._generate_commands()
            return self._transition(ResolutionState.CHOOSING)
        if choice.strategy == Strategy.RETRY:
            return self._transition(ResolutionState.CHECKING)
        return self._transition(ResolutionState.ABORTED, reason="user")

    def _escalate(self, resume: ResumeState) -> ResolutionState:
        if not self.can_escalate:
            self.error = EscalationUnavailableError(
                "Already running with elevated privileges; cannot escalate again. "
                f"Blocked: {', '.join(str(b.path) for b in self.blocked)}"
            )
            return self._transition(ResolutionState.ABORTED, reason="already elevated")

        elevator = find_elevator(self.settings.elevators, self._which)
        if elevator is None:
            self.error = EscalationUnavailableError(
                f"No privilege escalation tool found (tried: {', '.join(self.settings.elevators)})"
            )
            return self._transition(ResolutionState.ABORTED, reason="no elevator")

        argv = escalation_argv(elevator, resume)
        if self._audit is not None:
            self._audit.log("escalate", elevator=elevator, selected=resume.selected, name=resume.name)
        try:
            result = self._runner(argv, check=False)
        except OSError as e:
            self.error = EscalationFailedError(f"Failed to run '{elevator}': {e}")
            return self._transition(ResolutionState.ABORTED, reason="exec failed")

        self.child_returncode = result.returncode
        if result.returncode == 0:
            return self._transition(ResolutionState.DELEGATED)
        self.error = EscalationFailedError(
            f"Elevated run via '{elevator}' exited with status {result.returncode}"
        )
        return self._transition(ResolutionState.ABORTED, reason="child failed", returncode=result.returncode)

    def _generate_commands(self) -> None:
        elevator = find_elevator(self.settings.elevators, self._which) or "sudo"
        self.commands = remediation_commands(self.blocked, elevator)
        if self._audit is not None:
            self._audit.log("commands_generated", count=len(self.commands))
        self._offer("\n".join(self.commands), "Permission fix commands", self.settings.clipboard_commands)

    def run(self, chooser: Callable[["ResolutionEngine"], ResolutionChoice]) -> ResolutionState:
        """Drive the machine to a terminal state, asking the chooser whenever input is needed."""
        while self.state not in TERMINAL_STATES:
            if self.state == ResolutionState.CHECKING:
                self.check()
            elif self.state == ResolutionState.CHOOSING:
                self.choose(chooser(self))
            else:
                raise ResolutionError(f"Unexpected resolution state '{self.state.value}'")
        return self.state
