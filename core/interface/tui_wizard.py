"""First-run setup wizard: each answered step commits its own side effect."""

from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from application import project_setup

from .messages import translate
from .tui_modes import SetupWizard


class WizardStep(Enum):
    INTRO = ("intro", "WIZARD_INTRO_TITLE", "WIZARD_INTRO_BODY", None)
    CREATE_CONFIGS = ("create_configs", "WIZARD_CREATE_TITLE", "WIZARD_CREATE_BODY", "root")
    CURSOR = ("cursor", "WIZARD_CURSOR_TITLE", "WIZARD_CURSOR_BODY", "cursor")
    VSCODE = ("vscode", "WIZARD_VSCODE_TITLE", "WIZARD_VSCODE_BODY", "vscode")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return translate(self.value[1])

    @property
    def body(self) -> str:
        return translate(self.value[2])

    @property
    def config_target(self) -> Optional[str]:
        return self.value[3]


STEP_ORDER: Tuple[WizardStep, ...] = (
    WizardStep.INTRO,
    WizardStep.CREATE_CONFIGS,
    WizardStep.CURSOR,
    WizardStep.VSCODE,
)

Writer = Callable[[Path, str], Path]


def start(project_root: Path) -> SetupWizard:
    """Create the .tdd-pro structure and return the wizard at its first step."""
    project_setup.create_structure(project_root)
    return SetupWizard(step=WizardStep.INTRO, project_root=Path(project_root))


def _next_step(step: WizardStep) -> Optional[WizardStep]:
    idx = STEP_ORDER.index(step)
    return STEP_ORDER[idx + 1] if idx + 1 < len(STEP_ORDER) else None


def answer(wizard: SetupWizard, yes: bool, writer: Writer = project_setup.write_mcp_config) -> Tuple[Optional[SetupWizard], Optional[str]]:
    """Apply one answer. Returns (next wizard or None when finished, completion message)."""
    step = wizard.step
    if step is WizardStep.INTRO:
        return replace(wizard, step=WizardStep.CREATE_CONFIGS), None
    if step is WizardStep.CREATE_CONFIGS and not yes:
        return None, translate("WIZARD_SKIPPED")
    created = wizard.created
    if yes and step.config_target:
        created = created + (writer(wizard.project_root, step.config_target),)
    following = _next_step(step)
    if following is None:
        return None, completion_message(wizard.project_root, created)
    return replace(wizard, step=following, created=created), None


def completion_message(project_root: Path, created: Tuple[Path, ...]) -> str:
    if not created:
        return translate("WIZARD_DONE")
    labels = project_setup.created_labels(list(created), Path(project_root))
    return translate("WIZARD_DONE_CREATED", files=", ".join(labels))


__all__ = ["WizardStep", "STEP_ORDER", "start", "answer", "completion_message"]
