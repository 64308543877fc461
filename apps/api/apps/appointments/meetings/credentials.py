"""
Service-account credential discovery for the Google Calendar provider.

Locations are probed in a fixed order and the first file that exists and
parses wins. Nothing here raises: no usable file means (None, None) and the
caller runs in synthetic mode.
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from google.oauth2 import service_account

logger = logging.getLogger(__name__)

SCOPES = [
    'https://www.googleapis.com/auth/calendar',
    'https://www.googleapis.com/auth/calendar.events',
]

CREDENTIALS_FILENAME = 'service-account.json'


def candidate_credential_paths(explicit_path=None, cwd=None, package_dir=None, environ=None) -> List[Path]:
    """
    Probe order:
    1. explicit_path (GOOGLE_SERVICE_ACCOUNT_FILE)
    2. <cwd>/service-account.json
    3. <cwd>/config/google/service-account.json
    4. <package_dir>/config/google/service-account.json
    5. $GOOGLE_APPLICATION_CREDENTIALS
    """
    cwd = Path(cwd) if cwd is not None else Path.cwd()
    environ = os.environ if environ is None else environ

    candidates = []
    if explicit_path:
        candidates.append(Path(explicit_path))
    candidates.append(cwd / CREDENTIALS_FILENAME)
    candidates.append(cwd / 'config' / 'google' / CREDENTIALS_FILENAME)
    if package_dir is not None:
        candidates.append(Path(package_dir) / 'config' / 'google' / CREDENTIALS_FILENAME)
    if environ.get('GOOGLE_APPLICATION_CREDENTIALS'):
        candidates.append(Path(environ['GOOGLE_APPLICATION_CREDENTIALS']))

    unique = []
    for path in candidates:
        if path not in unique:
            unique.append(path)
    return unique


def load_service_account_credentials(paths, subject=None) -> Tuple[Optional[service_account.Credentials], Optional[Path]]:
    """Return (credentials, path) for the first usable file, else (None, None)."""
    for path in paths:
        if not path.is_file():
            continue
        try:
            info = json.loads(path.read_text(encoding='utf-8'))
            if not isinstance(info, dict):
                raise ValueError('service account file is not a JSON object')
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except (OSError, ValueError, KeyError) as exc:
            logger.warning(
                'Unusable service account file, skipping',
                extra={'path': str(path), 'error_type': type(exc).__name__}
            )
            continue

        if subject:
            credentials = credentials.with_subject(subject)
        logger.info('Google service account credentials loaded', extra={'path': str(path)})
        return credentials, path

    return None, None
