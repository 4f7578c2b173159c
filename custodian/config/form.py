"""
Configuration form model.

The host renders this structure to let an operator enter credentials and
withdrawal labels; validation failures are attached to the named fields.
"""

from dataclasses import dataclass, field
from enum import Enum


class AlertType(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


@dataclass
class AlertMessage:
    type: AlertType
    message: str


@dataclass
class FormField:
    label: str
    name: str
    value: str | None = None
    required: bool = False
    help_text: str | None = None
    type: str = "text"
    validation_errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors


def password_field(label: str, name: str, value: str | None, required: bool, help_text: str) -> FormField:
    return FormField(label, name, value, required, help_text, type="password")


def text_field(label: str, name: str, value: str | None, required: bool, help_text: str) -> FormField:
    return FormField(label, name, value, required, help_text, type="text")


@dataclass
class Fieldset:
    label: str
    fields: list[FormField] = field(default_factory=list)


@dataclass
class Form:
    fieldsets: list[Fieldset] = field(default_factory=list)
    top_messages: list[AlertMessage] = field(default_factory=list)

    def get_field_by_name(self, name: str) -> FormField | None:
        for fieldset in self.fieldsets:
            for form_field in fieldset.fields:
                if form_field.name == name:
                    return form_field
        return None

    @property
    def is_valid(self) -> bool:
        return all(f.is_valid for fs in self.fieldsets for f in fs.fields)
