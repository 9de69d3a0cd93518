class BaseType:

    def __init__(self):
        raise Exception("Cannot instantiate")

    @staticmethod
    def validate():
        raise NotImplementedError("Subclasses should implement this!")


class IdentityType(BaseType):

    @staticmethod
    def validate(value):
        if not isinstance(value, str):
            raise TypeError("Value must be a string.")
        if not value.strip():
            raise ValueError("Value must not be blank.")


class PayloadType(BaseType):
    """Opaque negotiation payload. Only presence is checked, never content."""

    @staticmethod
    def validate(value):
        if value is None:
            raise ValueError("Value must be present.")
        if isinstance(value, (str, bool, int, float)) and not value:
            raise ValueError("Value must not be empty.")


def validate_contract(contract, data):
    if not isinstance(data, dict):
        raise TypeError("Message must be an object.")
    for key, value in contract.items():
        if key not in data:
            raise KeyError(f"Missing key: {key}")
        if isinstance(value, dict):
            validate_contract(value, data[key])
        else:
            value.validate(data[key])


def validate_contract_with_error_response(contract, data):
    """
    Validate a contract and return an error response if validation fails.

    Args:
        contract: The contract schema to validate against
        data: The data to validate

    Returns:
        tuple: (is_valid: bool, error_response: dict or None)
            - If valid: (True, None)
            - If invalid: (False, error_response_dict with status and error fields)
    """
    from tools.logger import log_warning

    try:
        validate_contract(contract, data)
        return (True, None)
    except KeyError as e:
        log_warning(f"Contract validation error - missing field: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Missing required field: {str(e)}",
            },
        )
    except TypeError as e:
        log_warning(f"Contract validation error - type mismatch: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Invalid field type: {str(e)}",
            },
        )
    except ValueError as e:
        log_warning(f"Contract validation error - empty value: {e}")
        return (
            False,
            {
                "status": "error",
                "error": f"Invalid field value: {str(e)}",
            },
        )
