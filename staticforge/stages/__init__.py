"""Build stages, in pipeline order."""

from staticforge.stages.base import Stage, WorkerStage
from staticforge.stages.compile import CompileStage
from staticforge.stages.files import CopyFilesStage
from staticforge.stages.images import IMAGE_CHUNK_SIZE, ProcessImagesStage
from staticforge.stages.render import HTML_CHUNK_SIZE, RenderHtmlStage
from staticforge.stages.static import CopyStaticStage

__all__ = [
    "HTML_CHUNK_SIZE",
    "IMAGE_CHUNK_SIZE",
    "CompileStage",
    "CopyFilesStage",
    "CopyStaticStage",
    "ProcessImagesStage",
    "RenderHtmlStage",
    "Stage",
    "WorkerStage",
]
