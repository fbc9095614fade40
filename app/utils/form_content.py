from typing import Any, Dict, List, Optional


def _option_value(option: Any) -> Any:
    if isinstance(option, dict):
        return option.get("value")
    return option


def _option_label(option: Any) -> Any:
    if isinstance(option, dict):
        return option.get("label", option.get("value"))
    return option


def _label_for(value: Any, options: List[Any]) -> Any:
    """Label of the first option whose value matches, else the raw value."""
    for option in options:
        if _option_value(option) == value:
            return _option_label(option)
    return value


def merge_form_data(
    fields: List[Dict[str, Any]],
    form_data: Optional[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Merges a template's field definitions with a submission's raw values,
    replacing stored option values by their labels for display.

    Each returned entry is a copy of the field definition plus
    'submitted_value'. Unmatched values are passed through unchanged and
    fields missing from the data get None.
    """
    data = form_data or {}
    merged = []

    for field in fields:
        entry = dict(field)
        name = field.get("name")

        if not name or name not in data:
            entry["submitted_value"] = None
            merged.append(entry)
            continue

        raw_value = data[name]
        options = field.get("options") or []

        if options and isinstance(raw_value, list):
            # Multi-select (checkbox)
            entry["submitted_value"] = [
                _label_for(v, options) for v in raw_value]
        elif options:
            # Single-select (radio, select)
            entry["submitted_value"] = _label_for(raw_value, options)
        else:
            entry["submitted_value"] = raw_value

        merged.append(entry)

    return merged


def missing_required_fields(
    fields: List[Dict[str, Any]],
    form_data: Optional[Dict[str, Any]]
) -> List[str]:
    """Names of required fields that have no usable value."""
    data = form_data or {}
    missing = []
    for field in fields:
        if not field.get("required"):
            continue
        value = data.get(field.get("name"))
        if value is None or value == "" or value == []:
            missing.append(field.get("name"))
    return missing
