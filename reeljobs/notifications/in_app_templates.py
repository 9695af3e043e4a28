"""Templates for in-app job notifications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InAppTemplate:
  """Define an in-app notification template."""

  template_id: str
  title_template: str
  body_template: str
  required_keys: set[str]


def _done(template_id: str, title: str, body: str) -> InAppTemplate:
  return InAppTemplate(template_id=template_id, title_template=title, body_template=body, required_keys={"job_id"})


TEMPLATES: dict[str, InAppTemplate] = {
  "script_breakdown_done_v1": _done("script_breakdown_done_v1", "Script Breakdown Complete", "Your script breakdown is ready ({{scene_count}} scenes)."),
  "roto_done_v1": _done("roto_done_v1", "Roto Processing Complete", "Your video background removal is ready for download."),
  "color_grade_done_v1": _done("color_grade_done_v1", "Color Grading Complete", "Your color graded image is ready for download."),
  "mesh_generate_done_v1": _done("mesh_generate_done_v1", "3D Mesh Generated", "Your 3D model is ready for download."),
  "audio_clean_done_v1": _done("audio_clean_done_v1", "Audio Cleanup Complete", "Your cleaned audio is ready for download."),
  "job_done_v1": _done("job_done_v1", "Job Complete", "Your {{kind}} job has completed."),
  "job_failed_v1": InAppTemplate(template_id="job_failed_v1", title_template="{{kind_title}} Job Failed", body_template="Your {{kind}} job failed: {{error}}", required_keys={"job_id", "kind", "kind_title", "error"}),
}

_DONE_TEMPLATE_BY_KIND: dict[str, str] = {
  "script-breakdown": "script_breakdown_done_v1",
  "roto": "roto_done_v1",
  "color-grade": "color_grade_done_v1",
  "mesh-generate": "mesh_generate_done_v1",
  "audio-clean": "audio_clean_done_v1",
}


def done_template_for_kind(kind: str) -> str:
  """Pick the success template for a job kind, falling back to the generic one."""
  return _DONE_TEMPLATE_BY_KIND.get(kind, "job_done_v1")


def render_in_app_template(*, template_id: str, data: dict[str, Any]) -> tuple[str, str]:
  """Render a template into a title and body string."""
  template = TEMPLATES.get(template_id)
  if template is None:
    raise ValueError(f"Unknown in-app template: {template_id}")
  missing = sorted(template.required_keys - set(data.keys()))
  if missing:
    raise ValueError(f"Missing placeholders for template '{template_id}': {', '.join(missing)}")
  title = template.title_template
  body = template.body_template
  for key, value in data.items():
    title = title.replace(f"{{{{{key}}}}}", str(value))
    body = body.replace(f"{{{{{key}}}}}", str(value))
  return title, body
