"""Google Secret Manager access"""
import logging

from google.cloud import secretmanager

logger = logging.getLogger(__name__)


def load_secret(project_id: str, secret_name: str, version: str = 'latest') -> str:
    """
    Load a secret payload from Google Secret Manager

    Args:
        project_id: GCP project holding the secret
        secret_name: Secret id
        version: Secret version, defaults to the latest

    Returns:
        The decoded secret payload
    """
    client = secretmanager.SecretManagerServiceClient()
    name = f"projects/{project_id}/secrets/{secret_name}/versions/{version}"
    response = client.access_secret_version(request={"name": name})
    logger.info(f"Loaded secret {secret_name} from Secret Manager")
    return response.payload.data.decode('UTF-8').strip()
