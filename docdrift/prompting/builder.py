"""Renders remediation prompts and review messages from Jinja templates."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..config import DocAreaConfig, PolicyConfig
from ..models import DocAreaMode, DriftItem, RunResult


class PromptBuilder:
    """Builds the text handed to the agent and the source-control host.

    A custom ``templates_dir`` is searched before the bundled templates, so a
    project can override any one of them.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def autogen_prompt(
        self,
        item: DriftItem,
        *,
        attachments: Sequence[str],
        allowlist: Sequence[str],
        verification_commands: Sequence[str] = (),
        exclude: Sequence[str] = (),
        custom_instructions: str | None = None,
    ) -> str:
        return self._render(
            "autogen.j2",
            item=item,
            attachments=list(attachments),
            allowlist=list(allowlist),
            exclude=list(exclude),
            verification_commands=list(verification_commands),
            custom_instructions=custom_instructions,
        )

    def conceptual_prompt(
        self,
        item: DriftItem,
        *,
        attachments: Sequence[str],
        allowlist: Sequence[str],
        threshold: float,
        exclude: Sequence[str] = (),
        custom_instructions: str | None = None,
    ) -> str:
        return self._render(
            "conceptual.j2",
            item=item,
            attachments=list(attachments),
            allowlist=list(allowlist),
            exclude=list(exclude),
            threshold=threshold,
            custom_instructions=custom_instructions,
        )

    def prompt_for(
        self,
        item: DriftItem,
        area: DocAreaConfig,
        policy: PolicyConfig,
        attachments: Sequence[str],
        *,
        custom_instructions: str | None = None,
    ) -> str:
        """Pick the prompt matching the area's mode."""
        if area.mode is DocAreaMode.CONCEPTUAL:
            return self.conceptual_prompt(
                item,
                attachments=attachments,
                allowlist=policy.allowlist,
                threshold=policy.autopatch_threshold,
                exclude=policy.exclude,
                custom_instructions=custom_instructions,
            )
        return self.autogen_prompt(
            item,
            attachments=attachments,
            allowlist=policy.allowlist,
            verification_commands=policy.verification_commands,
            exclude=policy.exclude,
            custom_instructions=custom_instructions,
        )

    def issue_body(
        self,
        doc_area: str,
        evidence_summary: str,
        questions: Iterable[str],
        *,
        suggested_patch: str | None = None,
        session_url: str | None = None,
    ) -> str:
        return self._render(
            "issue.j2",
            doc_area=doc_area,
            evidence_summary=evidence_summary,
            questions=list(questions),
            suggested_patch=suggested_patch,
            session_url=session_url,
        )

    def run_comment(
        self,
        result: RunResult,
        validation: Sequence[Tuple[str, str]] = (),
    ) -> str:
        return self._render("run_comment.j2", result=result, validation=list(validation))

    # ------------------------------------------------------------------
    # Internals

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context).rstrip() + "\n"

    @staticmethod
    def _create_env(templates_dir: Optional[Path]) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["PromptBuilder"]
