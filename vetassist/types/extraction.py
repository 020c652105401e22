"""Staging records produced by the natural-language extractor"""
from typing import List, Optional, Union
from pydantic import BaseModel, Field


# Values coming from the model may be a number or descriptive text
RawField = Union[int, float, str, None]


class ExtractedNote(BaseModel):
    """Patient note as extracted; empty content is dropped at commit time"""
    content: str = ""


class ExtractedMedication(BaseModel):
    """Medication awaiting user review"""
    name: str = ""
    dosage: str = ""
    frequency: RawField = Field(24, description="Hours between doses, or text before coercion")
    duration_days: RawField = Field(7, description="Days of treatment, or text before coercion")
    start_time: str = Field("", description="Local time, YYYY-MM-DD HH:MM:SS")
    notes: str = ""
    patient_id: Optional[int] = None


class ExtractedPatientData(BaseModel):
    """Editable draft of a patient and its medications

    Never sent to the backend as is; see ``vetassist.services.drafts.commit_draft``.
    """
    name: str = ""
    species: str = ""
    assistant_id: int = 0
    assistant_name: Optional[str] = None
    notes: List[ExtractedNote] = Field(default_factory=list)
    medications: List[ExtractedMedication] = Field(default_factory=list)

    def add_medication(self, medication: ExtractedMedication) -> None:
        self.medications.append(medication)

    def replace_medication(self, index: int, medication: ExtractedMedication) -> None:
        """Replace the medication at ``index``; raises IndexError when out of range"""
        if not 0 <= index < len(self.medications):
            raise IndexError(f"No medication at position {index}")
        self.medications[index] = medication

    def remove_medication(self, index: int) -> ExtractedMedication:
        if not 0 <= index < len(self.medications):
            raise IndexError(f"No medication at position {index}")
        return self.medications.pop(index)


class ExtractionResult(BaseModel):
    """Result of processing one assistant message"""
    success: bool
    draft: Optional[ExtractedPatientData] = None
    error: Optional[str] = None
    processing_time: Optional[float] = None  # seconds
