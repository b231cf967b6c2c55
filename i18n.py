from __future__ import annotations

import re
from typing import Any, Optional


SUPPORTED_LOCALES = ("en", "es")
DEFAULT_LOCALE = "en"


_CATALOG: dict[str, dict[str, str]] = {
    "en": {
        "onboarding.errors.employeeNotFound": "Employee not found",
        "onboarding.errors.onboardingSessionAlreadyExists": "An active onboarding session already exists for this employee",
        "onboarding.errors.invalidToken": "Invalid onboarding token",
        "onboarding.errors.tokenExpired": "Onboarding token has expired",
        "onboarding.errors.onboardingSessionNotActive": "Onboarding session is not active",
        "onboarding.errors.onboardingSessionNotFound": "Onboarding session not found",
        "onboarding.errors.onboardingSessionExpired": "Onboarding session has expired",
        "onboarding.errors.tokenEmployeeMismatch": "Token does not match the specified employee",
        "onboarding.errors.additionalHoursRequired": "Additional hours must be a positive number",
        "onboarding.errors.tokenGenerationFailed": "Unable to generate unique token",
        "onboarding.errors.organizationNotFound": "Organization not found",
        "onboarding.success.sessionCreated": "Onboarding session created successfully",
        "onboarding.success.progressUpdated": "Onboarding progress updated successfully",
        "onboarding.success.sessionCompleted": "Onboarding completed successfully",
        "onboarding.success.sessionCancelled": "Onboarding session cancelled",
        "onboarding.success.sessionExtended": "Onboarding session extended successfully",
        "onboarding.success.onboardingStarted": "Onboarding started successfully",
        "onboarding.success.walkInCreated": "Walk-in onboarding session created for {name}",
        "employee.errors.emailExists": "Email already exists",
        "employee.errors.employeeNotFound": "Employee not found",
        "employee.success.employeeCreated": "Employee created successfully",
        "messages.errors.messageNotFound": "Message not found",
        "messages.errors.receiverNotFound": "Receiver not found",
        "messages.errors.cannotMessageUser": "You are not allowed to message this user",
        "messages.success.messageSent": "Message sent successfully",
        "announcements.errors.announcementNotFound": "Announcement not found",
        "announcements.success.announcementCreated": "Announcement created successfully",
        "announcements.success.announcementDeactivated": "Announcement deactivated",
        "auth.errors.invalidCredentials": "Invalid email or password",
        "auth.errors.sessionInvalid": "Invalid or expired session",
        "common.errors.validation": "Validation error",
        "common.errors.unexpected": "An unexpected error occurred",
        "common.errors.insufficientPermissions": "Insufficient permissions",
        "common.errors.authenticationRequired": "Authentication required",
        "common.errors.organizationIdRequired": "Organization ID is required",
        "common.errors.rateLimited": "Too many requests, try again later",
    },
    "es": {
        "onboarding.errors.employeeNotFound": "Empleado no encontrado",
        "onboarding.errors.onboardingSessionAlreadyExists": "Ya existe una sesión de incorporación activa para este empleado",
        "onboarding.errors.invalidToken": "Token de incorporación inválido",
        "onboarding.errors.tokenExpired": "El token de incorporación ha expirado",
        "onboarding.errors.onboardingSessionNotActive": "La sesión de incorporación no está activa",
        "onboarding.errors.onboardingSessionNotFound": "Sesión de incorporación no encontrada",
        "onboarding.errors.onboardingSessionExpired": "La sesión de incorporación ha expirado",
        "onboarding.errors.tokenEmployeeMismatch": "El token no coincide con el empleado especificado",
        "onboarding.errors.additionalHoursRequired": "Las horas adicionales deben ser un número positivo",
        "onboarding.errors.tokenGenerationFailed": "No se pudo generar un token único",
        "onboarding.errors.organizationNotFound": "Organización no encontrada",
        "onboarding.success.sessionCreated": "Sesión de incorporación creada exitosamente",
        "onboarding.success.progressUpdated": "Progreso de incorporación actualizado exitosamente",
        "onboarding.success.sessionCompleted": "Incorporación completada exitosamente",
        "onboarding.success.sessionCancelled": "Sesión de incorporación cancelada",
        "onboarding.success.sessionExtended": "Sesión de incorporación extendida exitosamente",
        "onboarding.success.onboardingStarted": "Incorporación iniciada exitosamente",
        "onboarding.success.walkInCreated": "Sesión de incorporación sin cita creada para {name}",
        "employee.errors.emailExists": "El correo electrónico ya existe",
        "employee.errors.employeeNotFound": "Empleado no encontrado",
        "employee.success.employeeCreated": "Empleado creado exitosamente",
        "messages.errors.messageNotFound": "Mensaje no encontrado",
        "messages.errors.receiverNotFound": "Destinatario no encontrado",
        "messages.errors.cannotMessageUser": "No tiene permiso para enviar mensajes a este usuario",
        "messages.success.messageSent": "Mensaje enviado exitosamente",
        "announcements.errors.announcementNotFound": "Anuncio no encontrado",
        "announcements.success.announcementCreated": "Anuncio creado exitosamente",
        "announcements.success.announcementDeactivated": "Anuncio desactivado",
        "auth.errors.invalidCredentials": "Correo electrónico o contraseña inválidos",
        "auth.errors.sessionInvalid": "Sesión inválida o expirada",
        "common.errors.validation": "Error de validación",
        "common.errors.unexpected": "Ocurrió un error inesperado",
        "common.errors.insufficientPermissions": "Permisos insuficientes",
        "common.errors.authenticationRequired": "Se requiere autenticación",
        "common.errors.organizationIdRequired": "Se requiere ID de organización",
        "common.errors.rateLimited": "Demasiadas solicitudes, intente más tarde",
    },
}

_PARAM_RE = re.compile(r"\{(\w+)\}")


def normalize_locale(value: Any) -> str:
    s = str(value or "").strip().lower()
    for loc in SUPPORTED_LOCALES:
        if s.startswith(loc):
            return loc
    return DEFAULT_LOCALE


class Translator:
    def __init__(self, catalog: Optional[dict[str, dict[str, str]]] = None):
        self._catalog = catalog or _CATALOG

    def t(self, key: str, params: Optional[dict[str, Any]] = None, locale: str = DEFAULT_LOCALE) -> str:
        loc = normalize_locale(locale)
        text = self._catalog.get(loc, {}).get(key) or self._catalog.get(DEFAULT_LOCALE, {}).get(key) or key
        if params:
            text = _PARAM_RE.sub(lambda m: str(params.get(m.group(1), m.group(0))), text)
        return text

    def has(self, key: str) -> bool:
        return key in self._catalog.get(DEFAULT_LOCALE, {})


default_translator = Translator()
