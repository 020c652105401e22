"""Output service for saving extraction drafts"""
import json
from pathlib import Path
from typing import Optional
from datetime import datetime

from vetassist.core.config import Config
from vetassist.types.extraction import ExtractionResult


class OutputService:
    """Service for saving extraction results"""

    @staticmethod
    def _get_safe_name(name: Optional[str]) -> str:
        """Get safe file name stem from a patient name"""
        unknown_fallback = Config.get("defaults", "unknown_fallback", default="unknown")
        if not name:
            return unknown_fallback

        truncate_limit = Config.get("limits", "string_truncation_safe_name", default=100)
        safe_name = "".join(c for c in name if c.isalnum() or c in "._-")[:truncate_limit]
        return safe_name or unknown_fallback

    @staticmethod
    def save_draft(
        result: ExtractionResult,
        output_dir: Path = None,
        message: Optional[str] = None
    ) -> Path:
        """
        Save an extraction result to a timestamped JSON file

        Args:
            result: ExtractionResult to save
            output_dir: Output directory (defaults to Config.OUTPUT_DIR)
            message: Original user message, stored alongside the draft

        Returns:
            Path to saved file
        """
        output_dir = output_dir or Config.OUTPUT_DIR
        output_dir.mkdir(parents=True, exist_ok=True)

        patient_name = result.draft.name if result.draft else None
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        draft_suffix = Config.get("files", "draft_suffix", default="_draft.json")
        output_path = output_dir / f"{timestamp}_{OutputService._get_safe_name(patient_name)}{draft_suffix}"

        output_data = {
            "timestamp": datetime.now().isoformat(),
            "message": message,
            "success": result.success,
            "error": result.error,
            "processing_time": result.processing_time,
            "draft": result.draft.model_dump() if result.draft else None,
        }

        json_indent = Config.get("defaults", "json_indent", default=2)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(output_data, f, indent=json_indent, ensure_ascii=False)

        return output_path

    @staticmethod
    def load_draft(path: Path) -> ExtractionResult:
        """Read back a draft saved by ``save_draft``"""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return ExtractionResult(
            success=data.get("success", False),
            draft=data.get("draft"),
            error=data.get("error"),
            processing_time=data.get("processing_time"),
        )
