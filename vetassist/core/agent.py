"""Core AI agent for assistant-driven patient registration"""
import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from vetassist.core.gemini_service import GeminiService
from vetassist.services.backend_client import BackendClient
from vetassist.services.drafts import commit_draft, convert_to_system_medication
from vetassist.types.extraction import ExtractedPatientData, ExtractionResult
from vetassist.types.records import Medication, Patient

logger = logging.getLogger(__name__)

RETRY_MESSAGE = (
    "Lo siento, tuve un problema al procesar tu solicitud. Por favor intenta "
    "nuevamente con más detalles o usa el formulario manual."
)


class AssistantAgent:
    """Turns free-text requests into patient drafts and commits confirmed drafts"""

    def __init__(self, gemini_service: GeminiService = None, gemini_api_key: str = None, model: str = None):
        """Initialize the assistant agent"""
        self.gemini_service = gemini_service or GeminiService(gemini_api_key, model)

    def process_message(self, message: str, now: Optional[datetime] = None) -> ExtractionResult:
        """
        Extract a patient draft from one message

        Args:
            message: Free-text instruction from the user
            now: Reference time for relative dates

        Returns:
            ExtractionResult with the draft or a generic error
        """
        start_time = time.time()

        try:
            draft = self.gemini_service.extract_patient_data(message, now)
            processing_time = time.time() - start_time
            logger.info(
                "Extracted draft for %r with %d medication(s) in %.2fs",
                draft.name, len(draft.medications), processing_time,
            )
            return ExtractionResult(
                success=True,
                draft=draft,
                processing_time=processing_time
            )

        except Exception as e:
            processing_time = time.time() - start_time
            logger.error("Error processing assistant message: %s", e)

            return ExtractionResult(
                success=False,
                error=RETRY_MESSAGE,
                processing_time=processing_time
            )

    @staticmethod
    def create_from_draft(
        client: BackendClient,
        draft: ExtractedPatientData,
        assistant_id: int,
        assistant_name: Optional[str],
    ) -> Tuple[Patient, List[Medication]]:
        """
        Create the patient, then each named medication, from a confirmed draft

        Args:
            client: Authenticated backend client
            draft: Draft the user reviewed
            assistant_id, assistant_name: Result of ``resolve_assistant``

        Raises:
            FormValidationError: when the draft fails final validation
            ApiError: when a backend call fails
        """
        patient_request, medications = commit_draft(draft, assistant_id, assistant_name)
        logger.info("Creating patient with data: %s", patient_request.model_dump())
        patient = client.create_patient(patient_request)

        created = []
        for medication in medications:
            created.append(client.add_medication(convert_to_system_medication(medication, patient.id)))
        return patient, created
