"""HTTP client for the clinic REST backend"""
import logging
from typing import Any, Dict, List, Optional

import requests

from vetassist.core.config import Config
from vetassist.types.records import Dose, Medication, Patient, User
from vetassist.types.requests import (
    LoginResponse,
    MedicationCreate,
    PatientCreate,
    UserCreate,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Backend call failed; ``str(error)`` is safe to show to the user"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiError):
    pass


class BackendClient:
    """Thin wrapper over the backend endpoints

    Authenticated requests carry ``Authorization: Bearer <token>`` once
    ``token`` is set, normally by ``vetassist.core.session.Session``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or Config.API_URL).rstrip("/")
        self.token = token
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json"})

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, error_message: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(
                method, self._url(path), headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(error_message) from e

        if response.status_code >= 400:
            logger.error("%s %s returned %s: %s", method, path, response.status_code, response.text)
            raise ApiError(error_message, status_code=response.status_code)

        if not response.content:
            return None
        return response.json()

    # Authentication

    def login(self, username: str, password: str) -> LoginResponse:
        """Exchange form-encoded credentials for a bearer token and profile"""
        if not username or not password:
            raise AuthenticationError("El nombre de usuario y la contraseña son obligatorios")

        logger.info("Attempting login for %s", username)
        login_path = Config.get("backend", "endpoints", "login", default="/auth/login")
        try:
            response = self.http.post(
                self._url(login_path),
                data={"username": username, "password": password},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Login request failed: %s", e)
            raise AuthenticationError("Error al iniciar sesión") from e

        if response.status_code == 422:
            logger.error("Login rejected as malformed: %s", response.text)
            raise AuthenticationError(
                "Formato de solicitud incorrecto. Verifica los campos requeridos.", status_code=422
            )
        if response.status_code == 401:
            logger.error("Login rejected for %s", username)
            raise AuthenticationError("Usuario o contraseña incorrectos", status_code=401)
        if response.status_code >= 400:
            logger.error("Login failed with %s: %s", response.status_code, response.text)
            raise AuthenticationError(
                response.text or "Error al iniciar sesión", status_code=response.status_code
            )

        logger.info("Login succeeded, token received")
        return LoginResponse.model_validate(response.json())

    # Patients

    def list_patients(self) -> List[Patient]:
        data = self._request("GET", "/patients/", "Error al obtener la lista de pacientes")
        return [Patient.model_validate(item) for item in data or []]

    def get_patient(self, patient_id: int) -> Patient:
        data = self._request("GET", f"/patients/{patient_id}", "Error al obtener los detalles del paciente")
        return Patient.model_validate(data)

    def create_patient(self, patient: PatientCreate) -> Patient:
        data = self._request("POST", "/patients/", "Error al crear paciente", json=patient.model_dump())
        return Patient.model_validate(data)

    def update_patient_assistant(self, patient_id: int, assistant_id: int) -> Patient:
        data = self._request(
            "PATCH", f"/patients/{patient_id}", "Error al actualizar el asistente",
            json={"assistant_id": assistant_id},
        )
        return Patient.model_validate(data)

    def delete_patient(self, patient_id: int) -> None:
        self._request("DELETE", f"/patients/{patient_id}", "Error al eliminar paciente")

    # Medications and doses

    def add_medication(self, medication: MedicationCreate) -> Medication:
        data = self._request(
            "POST", f"/patients/{medication.patient_id}/medications",
            "Error al agregar nueva medicación",
            json=medication.model_dump(exclude_none=True),
        )
        return Medication.model_validate(data)

    def get_medication(self, patient_id: int, medication_id: int) -> Medication:
        """Medication details come embedded in the patient record"""
        patient = self.get_patient(patient_id)
        for medication in patient.medications:
            if medication.id == medication_id:
                return medication
        raise ApiError("No se encontró la información de la medicación", status_code=404)

    def complete_medication(self, medication_id: int) -> Medication:
        data = self._request(
            "POST", f"/patients/medications/{medication_id}/complete", "Error al completar la medicación"
        )
        return Medication.model_validate(data)

    def cancel_medication(self, medication_id: int) -> Medication:
        data = self._request(
            "POST", f"/patients/medications/{medication_id}/cancel", "Error al cancelar el tratamiento"
        )
        return Medication.model_validate(data)

    def administer_dose(self, dose_id: int, notes: Optional[str] = None) -> Dose:
        data = self._request(
            "POST", f"/patients/doses/{dose_id}/administer", "Error al administrar la dosis",
            json={"notes": notes},
        )
        return Dose.model_validate(data)

    def get_pending_doses(self, patient_id: int) -> List[Dose]:
        data = self._request(
            "GET", f"/patients/{patient_id}/pending-doses/", "Error al obtener las dosis pendientes"
        )
        return [Dose.model_validate(item) for item in data or []]

    # Users

    def list_assistants(self) -> List[User]:
        data = self._request("GET", "/users/assistants", "Error al obtener la lista de asistentes")
        return [User.model_validate(item) for item in data or []]

    def list_users(self) -> List[User]:
        data = self._request("GET", "/users", "Error al obtener la lista de usuarios")
        return [User.model_validate(item) for item in data or []]

    def get_user(self, user_id: int) -> User:
        data = self._request("GET", f"/users/{user_id}", "Error al obtener el usuario")
        return User.model_validate(data)

    def create_user(self, user: UserCreate) -> User:
        data = self._request("POST", "/users/", "Error al crear usuario", json=user.model_dump())
        return User.model_validate(data)

    def update_user(self, user_id: int, user: UserUpdate) -> User:
        payload: Dict[str, Any] = user.model_dump(exclude={"password"})
        if user.password:
            payload["password"] = user.password
        data = self._request("PUT", f"/users/{user_id}/", "Error al actualizar usuario", json=payload)
        return User.model_validate(data)

    def delete_user(self, user_id: int) -> None:
        self._request("DELETE", f"/users/{user_id}", "Error al eliminar usuario")
