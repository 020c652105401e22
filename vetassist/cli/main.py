"""CLI client for the veterinary clinic backend"""
import functools
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from vetassist.core.agent import AssistantAgent
from vetassist.core.config import Config
from vetassist.core.gemini_service import ExtractionError
from vetassist.core.session import PermissionDenied, Session, SessionStore
from vetassist.services.backend_client import ApiError, BackendClient
from vetassist.services.directory import (
    active_medication_count,
    filter_patients,
    filter_users,
    group_by_species,
)
from vetassist.services.dose_schedule import (
    administer_dose,
    can_administer,
    dose_status_label,
    doses_by_status,
    next_pending_dose,
    progress_percent,
)
from vetassist.services.drafts import draft_summary, resolve_assistant, validate_extracted_data
from vetassist.services.formatting import (
    duration_to_string,
    frequency_to_string,
    medication_status_label,
)
from vetassist.services.output_service import OutputService
from vetassist.services.validation import (
    FormValidationError,
    validate_medication_form,
    validate_patient_form,
    validate_user_create,
    validate_user_update,
)
from vetassist.types.extraction import ExtractedMedication, ExtractedPatientData
from vetassist.types.records import DoseStatus, MedicationStatus, Role

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d"]
ROLE_CHOICE = click.Choice([r.value for r in Role])


def handle_errors(func):
    """Report expected failures on stderr and exit with status 1"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FormValidationError as e:
            for field, message in e.errors.items():
                click.echo(f"Error ({field}): {message}", err=True)
            sys.exit(1)
        except (ApiError, ExtractionError, PermissionDenied) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    return wrapper


def _fmt(moment: Optional[datetime]) -> str:
    return moment.strftime("%d/%m/%Y %H:%M") if moment else "N/A"


@click.group()
@click.option("--api-url", default=None, help=f"Backend base URL (default: {Config.API_URL})")
@click.option("--session-file", type=click.Path(dir_okay=False), default=None, help="Where the login is stored")
@click.option("--log-level", default=None, help=f"Logging level (default: {Config.LOG_LEVEL})")
@click.pass_context
def main(ctx: click.Context, api_url: Optional[str], session_file: Optional[str], log_level: Optional[str]):
    """Manage veterinary patients, medications and doses."""
    Config.setup_logging(log_level)
    if ctx.obj is None:
        store = SessionStore(Path(session_file) if session_file else None)
        ctx.obj = Session(BackendClient(base_url=api_url), store).load()


# Session

@main.command()
@click.argument("username")
@click.password_option(confirmation_prompt=False)
@click.pass_obj
@handle_errors
def login(session: Session, username: str, password: str):
    """Log in and remember the session."""
    user = session.login(username, password)
    click.echo(f"Sesión iniciada como {user.display_name} ({user.role})")


@main.command()
@click.pass_obj
def logout(session: Session):
    """Forget the stored session."""
    session.logout()
    click.echo("Sesión cerrada")


@main.command()
@click.pass_obj
@handle_errors
def whoami(session: Session):
    """Show the logged-in user."""
    user = session.require_user()
    click.echo(f"{user.display_name} (@{user.username}) - rol: {user.role}")


# Patients

@main.group()
def patients():
    """Patient commands."""


@patients.command("list")
@click.option("--search", "-s", default="", help="Filter by name or species")
@click.pass_obj
@handle_errors
def list_patients(session: Session, search: str):
    """List patients grouped by species."""
    session.require_user()
    found = filter_patients(session.client.list_patients(), search)
    if not found:
        click.echo("No se encontraron pacientes")
        return
    for species, members in group_by_species(found).items():
        click.echo(f"{species} ({len(members)})")
        for patient in members:
            click.echo(
                f"  #{patient.id} {patient.name} - asistente: {patient.assistant_name or patient.assistant_id}"
                f" - medicaciones activas: {active_medication_count(patient)}"
            )


@patients.command("show")
@click.argument("patient_id", type=int)
@click.pass_obj
@handle_errors
def show_patient(session: Session, patient_id: int):
    """Show a patient with notes and medications."""
    session.require_user()
    patient = session.client.get_patient(patient_id)
    click.echo(f"{patient.name} ({patient.species})")
    click.echo(f"Asistente: {patient.assistant_name or patient.assistant_id}")
    click.echo(f"Creado: {_fmt(patient.created_at)}")

    click.echo(f"\nNotas ({len(patient.notes)})")
    if not patient.notes:
        click.echo("  No hay notas")
    for note in patient.notes:
        click.echo(f"  - {note.content} [{note.created_by or ''} {_fmt(note.created_at)}]")

    click.echo(f"\nMedicaciones ({len(patient.medications)})")
    now = datetime.now()
    for medication in patient.medications:
        click.echo(
            f"  #{medication.id} {medication.name} {medication.dosage} - "
            f"{frequency_to_string(medication.frequency)} - {medication_status_label(medication.status)} - "
            f"{progress_percent(medication)}%"
        )
        upcoming = next_pending_dose(medication)
        if upcoming and medication.status == MedicationStatus.ACTIVE:
            click.echo(f"      Próxima dosis: {_fmt(upcoming.scheduled_time)} ({dose_status_label(upcoming, now)})")


@patients.command("create")
@click.option("--name", prompt="Nombre")
@click.option("--species", prompt="Especie")
@click.option("--assistant-id", type=int, default=None, help="Assistant user id")
@click.option("--note", default="", help="Initial note")
@click.pass_obj
@handle_errors
def create_patient(session: Session, name: str, species: str, assistant_id: Optional[int], note: str):
    """Create a patient manually."""
    session.require_user()
    assistants = session.client.list_assistants()
    if assistant_id is None:
        for assistant in assistants:
            click.echo(f"  {assistant.id}: {assistant.display_name}")
        assistant_id = click.prompt("Asistente (id)", type=int, default=0, show_default=False)
    assistant = next((a for a in assistants if a.id == assistant_id), None)
    request = validate_patient_form(
        name, species, assistant_id if assistant else None,
        assistant.full_name if assistant else None, note,
    )
    patient = session.client.create_patient(request)
    click.echo(f"Paciente creado correctamente (#{patient.id})")


@patients.command("assign")
@click.argument("patient_id", type=int)
@click.argument("assistant_id", type=int)
@click.pass_obj
@handle_errors
def assign_patient(session: Session, patient_id: int, assistant_id: int):
    """Reassign a patient to another assistant."""
    session.require_user()
    patient = session.client.update_patient_assistant(patient_id, assistant_id)
    click.echo(f"{patient.name} asignado a {patient.assistant_name or assistant_id}")


@patients.command("delete")
@click.argument("patient_id", type=int)
@click.confirmation_option(prompt="¿Eliminar el paciente y todos sus tratamientos?")
@click.pass_obj
@handle_errors
def delete_patient(session: Session, patient_id: int):
    """Delete a patient."""
    session.require_user()
    session.client.delete_patient(patient_id)
    click.echo("Paciente eliminado")


# Medications

@main.group()
def medications():
    """Medication commands."""


@medications.command("add")
@click.argument("patient_id", type=int)
@click.option("--name", prompt="Medicamento")
@click.option("--dosage", prompt="Dosis")
@click.option("--frequency", prompt="Frecuencia (horas)", help="Hours between doses")
@click.option("--duration", "duration_days", prompt="Duración (días)", help="Treatment length in days")
@click.option("--start", type=click.DateTime(DATETIME_FORMATS), default=None, help="Start time (default: now)")
@click.option("--notes", default="")
@click.pass_obj
@handle_errors
def add_medication(session: Session, patient_id: int, name: str, dosage: str, frequency: str,
                   duration_days: str, start: Optional[datetime], notes: str):
    """Add a medication to a patient."""
    session.require_user()
    request = validate_medication_form(
        patient_id, name, dosage, frequency, duration_days, start or datetime.now(), notes
    )
    medication = session.client.add_medication(request)
    click.echo(
        f"Medicación creada (#{medication.id}): {medication.name} {frequency_to_string(medication.frequency)} "
        f"durante {duration_to_string(medication.duration_days)}"
    )


@medications.command("show")
@click.argument("patient_id", type=int)
@click.argument("medication_id", type=int)
@click.pass_obj
@handle_errors
def show_medication(session: Session, patient_id: int, medication_id: int):
    """Show a medication with its doses and progress."""
    session.require_user()
    medication = session.client.get_medication(patient_id, medication_id)
    grouped = doses_by_status(medication)
    now = datetime.now()

    click.echo(f"{medication.name} - Dosis: {medication.dosage}")
    click.echo(f"Frecuencia: {frequency_to_string(medication.frequency)}")
    click.echo(f"Duración: {duration_to_string(medication.duration_days)}")
    click.echo(f"Inicio: {_fmt(medication.start_time)}")
    click.echo(f"Estado: {medication_status_label(medication.status)}")
    click.echo(
        f"Progreso: {progress_percent(medication)}% "
        f"({len(grouped[DoseStatus.ADMINISTERED])} de {len(medication.doses)} dosis administradas)"
    )

    sections = [
        (DoseStatus.PENDING, "Dosis pendientes"),
        (DoseStatus.ADMINISTERED, "Dosis administradas"),
        (DoseStatus.MISSED, "Dosis omitidas"),
    ]
    for status, title in sections:
        if not grouped[status]:
            continue
        click.echo(f"\n{title} ({len(grouped[status])})")
        for dose in grouped[status]:
            line = f"  #{dose.id} {_fmt(dose.scheduled_time)} - {dose_status_label(dose, now)}"
            if dose.notes:
                line += f" - Notas: {dose.notes}"
            click.echo(line)


@medications.command("cancel")
@click.argument("medication_id", type=int)
@click.confirmation_option(prompt="¿Cancelar el tratamiento? Las dosis pendientes no podrán administrarse.")
@click.pass_obj
@handle_errors
def cancel_medication(session: Session, medication_id: int):
    """Cancel a treatment."""
    session.require_user()
    medication = session.client.cancel_medication(medication_id)
    click.echo(f"Tratamiento {medication.name}: {medication_status_label(medication.status)}")


@medications.command("complete")
@click.argument("medication_id", type=int)
@click.pass_obj
@handle_errors
def complete_medication(session: Session, medication_id: int):
    """Mark a treatment as completed."""
    session.require_user()
    medication = session.client.complete_medication(medication_id)
    click.echo(f"Tratamiento {medication.name}: {medication_status_label(medication.status)}")


# Doses

@main.group()
def doses():
    """Dose commands."""


@doses.command("pending")
@click.argument("patient_id", type=int)
@click.pass_obj
@handle_errors
def pending_doses(session: Session, patient_id: int):
    """List a patient's pending doses."""
    session.require_user()
    now = datetime.now()
    pending = session.client.get_pending_doses(patient_id)
    if not pending:
        click.echo("No hay dosis pendientes")
    for dose in pending:
        click.echo(
            f"  #{dose.id} (medicación #{dose.medication_id}) {_fmt(dose.scheduled_time)} - "
            f"{dose_status_label(dose, now)}"
        )


@doses.command("administer")
@click.argument("patient_id", type=int)
@click.argument("medication_id", type=int)
@click.argument("dose_id", type=int)
@click.option("--notes", default=None)
@click.pass_obj
@handle_errors
def administer(session: Session, patient_id: int, medication_id: int, dose_id: int, notes: Optional[str]):
    """Administer a dose once it is due."""
    session.require_user()
    medication = session.client.get_medication(patient_id, medication_id)
    dose = next((d for d in medication.doses if d.id == dose_id), None)
    if dose is None:
        raise ApiError(f"La dosis #{dose_id} no pertenece a esta medicación", status_code=404)
    if medication.status == MedicationStatus.CANCELLED:
        raise ApiError("El tratamiento está cancelado")
    if not can_administer(dose):
        raise ApiError(f"No se puede administrar todavía: {dose_status_label(dose)}")

    updated = administer_dose(
        session.client, dose, notes=notes,
        on_administered=lambda d: click.echo(f"Dosis #{d.id} administrada"),
    )
    if updated is None:
        raise ApiError("Error al administrar la dosis")


# AI assistant

def _edit_medication(medication: ExtractedMedication) -> ExtractedMedication:
    return ExtractedMedication(
        name=click.prompt("Medicamento", default=medication.name),
        dosage=click.prompt("Dosis", default=medication.dosage),
        frequency=click.prompt("Frecuencia (horas)", default=str(medication.frequency)),
        duration_days=click.prompt("Duración (días)", default=str(medication.duration_days)),
        start_time=click.prompt("Inicio (YYYY-MM-DD HH:MM:SS)", default=medication.start_time),
        notes=click.prompt("Notas", default=medication.notes, show_default=False),
    )


def _pick_medication(draft: ExtractedPatientData) -> int:
    index = click.prompt("Número de medicación", type=click.IntRange(1, len(draft.medications)))
    return index - 1


def _review(draft: ExtractedPatientData) -> bool:
    """Let the user edit the draft until they confirm (True) or cancel (False)"""
    while True:
        click.echo("\n" + draft_summary(draft))
        choice = click.prompt(
            "\n[c]onfirmar, editar [p]aciente, [a]ñadir, [e]ditar o [b]orrar medicación, [x] cancelar",
            type=click.Choice(["c", "p", "a", "e", "b", "x"]),
            show_choices=False,
        )
        if choice == "c":
            if validate_extracted_data(draft):
                return True
            click.echo("Faltan datos: el paciente necesita nombre y especie, cada medicación nombre y dosis.")
        elif choice == "p":
            draft.name = click.prompt("Nombre", default=draft.name)
            draft.species = click.prompt("Especie", default=draft.species)
            draft.assistant_name = click.prompt("Asistente", default=draft.assistant_name or "")
        elif choice == "a":
            draft.add_medication(_edit_medication(ExtractedMedication(start_time=datetime.now().strftime("%Y-%m-%d %H:%M:00"))))
        elif choice == "e" and draft.medications:
            index = _pick_medication(draft)
            draft.replace_medication(index, _edit_medication(draft.medications[index]))
        elif choice == "b" and draft.medications:
            draft.remove_medication(_pick_medication(draft))
        elif choice == "x":
            return False


@main.command()
@click.argument("message", required=False)
@click.option("--from-draft", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Resume review of a saved draft instead of calling the model")
@click.option("--save", is_flag=True, help="Save the extracted draft to the output directory")
@click.option("--output", "-o", type=click.Path(file_okay=False), default=None,
              help=f"Output directory for drafts (default: {Config.OUTPUT_DIR})")
@click.pass_obj
@handle_errors
def assistant(session: Session, message: Optional[str], from_draft: Optional[str], save: bool, output: Optional[str]):
    """Register a patient from a free-text MESSAGE."""
    user = session.require_user()

    if from_draft:
        result = OutputService.load_draft(Path(from_draft))
    else:
        if not message:
            message = click.prompt("Describe el paciente y sus medicamentos")
        try:
            Config.validate()
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        click.echo("Procesando...")
        result = AssistantAgent().process_message(message)
        if save:
            path = OutputService.save_draft(result, Path(output) if output else None, message)
            click.echo(f"Borrador guardado en: {path}")

    if not result.success or result.draft is None:
        raise ExtractionError(result.error or "No se pudo procesar la solicitud")

    draft = result.draft
    if not _review(draft):
        click.echo("Se ha cancelado la creación del paciente.")
        return

    assistant_id, assistant_name, found = resolve_assistant(draft, session.client.list_assistants(), user)
    unassigned = Config.get("defaults", "assistant_name", default="Sin Asistente")
    if draft.assistant_name and draft.assistant_name != unassigned and not found:
        click.echo(f"No se encontró al asistente \"{draft.assistant_name}\". Se te asignará como asistente.")

    patient, created = AssistantAgent.create_from_draft(
        session.client, draft, assistant_id, assistant_name
    )
    click.echo(f"Paciente creado con éxito (#{patient.id}) con {len(created)} medicación(es)")


# Admin users

@main.group()
@click.pass_obj
@handle_errors
def users(session: Session):
    """User administration (admin only)."""
    session.require_admin()


@users.command("list")
@click.option("--search", "-s", default="", help="Filter by username, name, email or role")
@click.pass_obj
@handle_errors
def list_users(session: Session, search: str):
    """List users."""
    for user in filter_users(session.client.list_users(), search):
        click.echo(f"  #{user.id} {user.username} - {user.full_name or ''} - {user.email or ''} - {user.role}")


@users.command("show")
@click.argument("user_id", type=int)
@click.pass_obj
@handle_errors
def show_user(session: Session, user_id: int):
    """Show one user."""
    user = session.client.get_user(user_id)
    click.echo(f"#{user.id} {user.username} ({user.role})")
    click.echo(f"Nombre: {user.full_name or ''}")
    click.echo(f"Correo: {user.email or ''}")
    click.echo(f"Teléfono: {user.phone or ''}")


@users.command("create")
@click.option("--username", prompt="Usuario")
@click.option("--email", prompt="Correo electrónico")
@click.option("--full-name", prompt="Nombre completo", default="")
@click.option("--phone", prompt="Teléfono")
@click.option("--role", type=ROLE_CHOICE, default=Role.ASSISTANT.value, prompt="Rol")
@click.password_option()
@click.pass_obj
@handle_errors
def create_user(session: Session, username: str, email: str, full_name: str, phone: str, role: str, password: str):
    """Create a user."""
    request = validate_user_create(username, email, password, password, phone, role, full_name or None)
    user = session.client.create_user(request)
    click.echo(f"Usuario creado exitosamente (#{user.id})")


@users.command("update")
@click.argument("user_id", type=int)
@click.option("--username", default=None)
@click.option("--email", default=None)
@click.option("--full-name", default=None)
@click.option("--phone", default=None)
@click.option("--role", type=ROLE_CHOICE, default=None)
@click.option("--password", default=None, help="New password; omit to keep the current one")
@click.pass_obj
@handle_errors
def update_user(session: Session, user_id: int, username, email, full_name, phone, role, password):
    """Update a user; omitted fields keep their current value."""
    current = session.client.get_user(user_id)
    request = validate_user_update(
        username=username or current.username,
        email=email or current.email or "",
        phone=phone or current.phone or "",
        role=role or current.role,
        full_name=full_name or current.full_name,
        password=password,
        confirm_password=password,
    )
    user = session.client.update_user(user_id, request)
    click.echo(f"Usuario #{user.id} actualizado")


@users.command("delete")
@click.argument("user_id", type=int)
@click.confirmation_option(prompt="¿Eliminar el usuario?")
@click.pass_obj
@handle_errors
def delete_user(session: Session, user_id: int):
    """Delete a user."""
    session.client.delete_user(user_id)
    click.echo("Usuario eliminado")


@main.command()
@click.option("--host", default=None, help=f"Bind address (default: {Config.API_HOST})")
@click.option("--port", type=int, default=None, help=f"Port (default: {Config.API_PORT})")
def serve(host: Optional[str], port: Optional[int]):
    """Run the assistant extraction service."""
    import uvicorn

    try:
        Config.validate()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    uvicorn.run("vetassist.main:app", host=host or Config.API_HOST, port=port or Config.API_PORT)


if __name__ == "__main__":
    main()
