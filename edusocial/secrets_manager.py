import json
import os
import time
import logging
from typing import Any, Dict, Optional, Tuple

import boto3

logger = logging.getLogger(__name__)

DEFAULT_SECRET_ID = "edusocial/app"

# Settings field -> key inside the secret bundle
SECRET_FIELDS = {
    "db_username": "username",
    "db_password": "password",
    "push_notification_url": "push_notification_url",
}


class SecretsManager:
    """
    Loads the EduSocial secret bundle (database credentials and the push
    gateway URL) from AWS Secrets Manager.

    Each secret is cached for ``cache_ttl`` seconds so rotated credentials are
    picked up; if a refresh fails the last value is served instead.
    """

    def __init__(self, region_name: str = None, cache_ttl: int = 300, client=None):
        self.region_name = region_name or os.environ.get('AWS_REGION', 'us-east-1')
        self.cache_ttl = cache_ttl
        self._client = client
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    @property
    def client(self):
        if self._client is None:
            session = boto3.session.Session()
            self._client = session.client(service_name='secretsmanager', region_name=self.region_name)
        return self._client

    @property
    def secret_id(self) -> str:
        return os.environ.get('EDUSOCIAL_SECRET_ID', DEFAULT_SECRET_ID)

    def _fetch(self, secret_id: str) -> Dict[str, Any]:
        response = self.client.get_secret_value(SecretId=secret_id)
        raw = response.get('SecretString') or response['SecretBinary']
        return json.loads(raw)

    def get_bundle(self, secret_id: Optional[str] = None) -> Dict[str, Any]:
        secret_id = secret_id or self.secret_id
        now = time.time()
        cached = self._cache.get(secret_id)
        if cached and now - cached[0] < self.cache_ttl:
            return cached[1]

        logger.info(f"Fetching secret bundle {secret_id}")
        try:
            bundle = self._fetch(secret_id)
        except Exception as e:
            if cached:
                logger.warning(f"Refreshing {secret_id} failed, serving cached value: {e}")
                return cached[1]
            raise
        self._cache[secret_id] = (now, bundle)
        return bundle

    def get_setting(self, field_name: str, default: Any = None) -> Any:
        """Value for a ``Settings`` field, or ``default`` when the bundle lacks it."""
        key = SECRET_FIELDS.get(field_name)
        if key is None:
            return default
        return self.get_bundle().get(key, default)

    def clear_cache(self):
        self._cache.clear()
