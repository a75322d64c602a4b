

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ToolConfig:
    """Metered tool definition."""
    id: str
    name: str
    category: str
    points_cost: int
    is_enabled: bool = True
    max_usage_per_day: Optional[int] = None
    tags: List[str] = field(default_factory=list)


TOOLS: Dict[str, ToolConfig] = {
    tool.id: tool
    for tool in [
        ToolConfig("flux-schnell", "Flux Schnell", "text-to-image", 1, max_usage_per_day=100,
                   tags=["ai", "image", "generation", "fast"]),
        ToolConfig("flux-dev", "Flux Dev", "text-to-image", 3, max_usage_per_day=50,
                   tags=["ai", "image", "generation", "advanced"]),
        ToolConfig("flux-pro", "Flux Pro", "text-to-image", 8, tags=["ai", "image", "generation", "pro"]),
        ToolConfig("flux-1.1-pro", "Flux 1.1 Pro", "text-to-image", 8, tags=["ai", "image", "generation"]),
        ToolConfig("flux-1.1-pro-ultra", "Flux 1.1 Pro Ultra", "text-to-image", 12,
                   tags=["ai", "image", "generation", "ultra"]),
        ToolConfig("text-image-search", "Text Image Search", "image-search", 1, tags=["search"]),
        ToolConfig("image-similarity-search", "Image Similarity Search", "image-search", 2, tags=["search"]),
        ToolConfig("image-summary", "Image Summary", "image-analysis", 2, tags=["analysis"]),
        ToolConfig("image-ocr", "Image OCR", "image-analysis", 1, tags=["analysis", "ocr"]),
        ToolConfig("image-edit-canny", "Flux Canny", "image-editing", 2, tags=["editing", "flux-tools"]),
        ToolConfig("image-edit-fill", "Flux Fill", "image-editing", 3, tags=["editing", "flux-tools"]),
        ToolConfig("image-edit-redux", "Flux Redux", "image-editing", 2, tags=["editing", "flux-tools"]),
        ToolConfig("image-edit-depth", "Flux Depth", "image-editing", 2, tags=["editing", "flux-tools"]),
        ToolConfig("image-to-video", "Image to Video", "image-to-video", 10, tags=["video"]),
        ToolConfig("video-upscale", "Video Upscale", "video-processing", 15, tags=["video"]),
    ]
}


def get_tool(tool_id: str) -> Optional[ToolConfig]:
    """Look up an enabled tool by id."""
    tool = TOOLS.get(tool_id)
    if tool is None or not tool.is_enabled:
        return None
    return tool


def list_tools(category: Optional[str] = None) -> List[ToolConfig]:
    """List enabled tools, optionally filtered by category."""
    return [
        tool for tool in TOOLS.values()
        if tool.is_enabled and (category is None or tool.category == category)
    ]
