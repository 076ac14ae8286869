from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict


def _form_value(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class JsonForm(FlaskForm):
    """
    FlaskForm fed from a JSON request body.

    The API authenticates with bearer tokens, so CSRF is off. Null and
    empty values are dropped, which lets Optional() treat them as absent.
    """

    class Meta:
        csrf = False

    @classmethod
    def from_json(cls, payload=None, **kwargs):
        if payload is None:
            payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = {}
        formdata = MultiDict(
            {
                key: _form_value(value)
                for key, value in payload.items()
                if value is not None and value != "" and not isinstance(value, (dict, list))
            }
        )
        return cls(formdata=formdata, **kwargs)

    def first_error(self):
        """First validation message, for the {"error": ...} response body"""
        for field in self:
            if field.errors:
                return f"{field.label.text}: {field.errors[0]}"
        return "Invalid request"

    def data_for(self, *names):
        """Only the named fields that were actually sent"""
        return {
            name: self[name].data
            for name in names
            if self[name].raw_data
        }
