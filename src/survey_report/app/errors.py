from __future__ import annotations


class AppError(Exception):
    # Base class for domain errors (intended, meaningful failures).
    pass


class SurveyError(AppError):
    # Raised when a report request does not fit the survey it targets.
    pass


class SurveyNotFound(SurveyError):
    # Raised when the survey id is unknown or the survey is not active.
    pass


class InvalidLanguage(SurveyError):
    # Raised when the language is malformed or not configured for the survey.
    pass


class InvalidQuestionList(SurveyError):
    # Raised when an allow/deny list holds keys that are not response columns.
    pass


class InvalidRespondentSelection(SurveyError):
    # Raised for unusable ids, tokens or date ranges.
    pass


class AnonymousSurvey(InvalidRespondentSelection):
    # Raised when tokens are used against an anonymized survey.
    pass


class MissingDatestamp(InvalidRespondentSelection):
    # Raised when dates are used against a survey that records no datestamp.
    pass


class InvalidRequest(AppError):
    # Raised when a request payload violates the request schema.
    pass


class StorageError(AppError):
    # Raised by the metadata/response stores (bad column reference, unreadable table, etc.).
    pass


class ImporterError(AppError):
    # Raised for importer-related failures (schema mismatch, unreadable file, etc.).
    pass
