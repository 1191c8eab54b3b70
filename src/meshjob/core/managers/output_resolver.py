"""Selects the downloadable artifact from a completed job's output payload.

The output payload comes in three shapes:
    None / missing            -> no artifact
    "https://.../model.glb"   -> legacy bare URL, treated as the primary model
    {"model_glb_pbr": {...}, "model_glb": {...}, "model_mesh": {...}}

Each variant is {url, content_type?, file_size?}. The PBR-textured model is
preferred over the primary model. The mesh archive is listed as a download
but never chosen as the main artifact.
"""

from typing import Any, Dict, List, Optional

from meshjob.core.models.job import ArtifactKind, OutputArtifact
from meshjob.core.settings import logger

# Variant field names in selection priority order
VARIANT_FIELDS: Dict[str, ArtifactKind] = {
    "model_glb_pbr": ArtifactKind.pbr_model,
    "model_glb": ArtifactKind.primary_model,
    "model_mesh": ArtifactKind.mesh_archive,
}

SELECTABLE_KINDS = (ArtifactKind.pbr_model, ArtifactKind.primary_model)


class ResolvedOutput:
    """Outcome of output resolution.

    Attributes:
        artifact: Selected main artifact, None when nothing usable was found
        downloads: Every usable variant, in priority order
        warning: Data-completeness warning when the job completed without a usable URL
    """

    def __init__(
        self,
        artifact: Optional[OutputArtifact] = None,
        downloads: Optional[List[OutputArtifact]] = None,
        warning: Optional[str] = None,
    ):
        self.artifact = artifact
        self.downloads = downloads or []
        self.warning = warning


def has_artifact_fields(payload: Any) -> bool:
    """True when payload looks like an output object (carries a variant field)."""
    return isinstance(payload, dict) and any(
        field in payload for field in VARIANT_FIELDS
    )


def _artifact_from_variant(kind: ArtifactKind, variant: Any) -> Optional[OutputArtifact]:
    if not isinstance(variant, dict):
        return None
    url = variant.get("url")
    if not isinstance(url, str) or not url.strip():
        return None
    content_type = variant.get("content_type")
    file_size = variant.get("file_size")
    return OutputArtifact(
        kind=kind,
        url=url.strip(),
        content_type=content_type if isinstance(content_type, str) else None,
        byte_size=file_size if isinstance(file_size, int) and file_size >= 0 else None,
    )


def list_artifacts(output: Any) -> List[OutputArtifact]:
    if isinstance(output, str):
        url = output.strip()
        return [OutputArtifact(kind=ArtifactKind.primary_model, url=url)] if url else []
    if not isinstance(output, dict):
        return []
    artifacts = []
    for field, kind in VARIANT_FIELDS.items():
        artifact = _artifact_from_variant(kind, output.get(field))
        if artifact is not None:
            artifacts.append(artifact)
    return artifacts


def resolve_output(output: Any, job_id: Optional[str] = None) -> ResolvedOutput:
    """Pick the best artifact out of a completed job's output payload.

    Never raises: a completed job without a usable URL yields an empty
    result carrying a warning.
    """
    downloads = list_artifacts(output)
    for kind in SELECTABLE_KINDS:
        for artifact in downloads:
            if artifact.kind == kind:
                logger.debug(f"[resolve] selected {kind} job_id={job_id} url={artifact.url}")
                return ResolvedOutput(artifact=artifact, downloads=downloads)

    warning = "Job completed but the provider returned no usable model URL"
    logger.warning(
        f"[resolve] no usable artifact job_id={job_id} output_type={type(output).__name__} "
        f"variants={[a.kind.value for a in downloads]}"
    )
    return ResolvedOutput(artifact=None, downloads=downloads, warning=warning)
