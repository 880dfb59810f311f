from http import HTTPStatus

# Reason phrases indexed by status code, as used in response lines.
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}

# EOF
