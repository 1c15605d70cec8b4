"""Kubernetes connection discovery.

Finds the kubeconfig to use (explicit option, $KUBECONFIG, ~/.kube/config or
in-cluster service account) and the namespace to operate in.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from kubernetes import client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from ..errors import ConfigurationError
from .client import PlatformClient

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


def find_kubeconfig(kubeconfig_option: Optional[str] = None) -> Optional[str]:
    """Locate the kubeconfig file.

    Args:
        kubeconfig_option: Path passed with --kubeconfig (optional)

    Returns:
        Path to the kubeconfig, or None to use the in-cluster configuration
    """
    if kubeconfig_option:
        return kubeconfig_option

    env_path = os.environ.get("KUBECONFIG")
    if env_path:
        logger.info(f"Using kubeconfig from KUBECONFIG environment variable: {env_path}")
        return env_path

    home_path = Path.home() / ".kube" / "config"
    if home_path.exists():
        logger.info(f"Using kubeconfig from home directory: {home_path}")
        return str(home_path)

    logger.info("Could not find Kubernetes configuration file. In-cluster configuration will be used.")
    return None


def load_kubernetes_configuration(kubeconfig_option: Optional[str] = None) -> tuple[client.ApiClient, Optional[str]]:
    """Build an ApiClient and discover the default namespace.

    Returns:
        Tuple of (api_client, namespace or None)

    Raises:
        ConfigurationError: If no usable configuration is found
    """
    configuration = client.Configuration()
    kubeconfig = find_kubeconfig(kubeconfig_option)

    if kubeconfig:
        try:
            k8s_config.load_kube_config(config_file=kubeconfig, client_configuration=configuration)
        except (ConfigException, OSError) as e:
            raise ConfigurationError(f"Failed to load Kubernetes configuration from {kubeconfig}: {e}") from e
        namespace = _kubeconfig_namespace(kubeconfig)
    else:
        try:
            k8s_config.load_incluster_config(client_configuration=configuration)
        except ConfigException as e:
            raise ConfigurationError(f"Failed to load Kubernetes in-cluster configuration: {e}") from e
        namespace = _service_account_namespace()

    return client.ApiClient(configuration=configuration), namespace


def resolve_namespace(namespace_option: Optional[str], discovered_namespace: Optional[str]) -> str:
    """Pick the namespace from the option or the client configuration.

    Raises:
        ConfigurationError: If neither is set
    """
    if namespace_option:
        return namespace_option
    if discovered_namespace:
        return discovered_namespace
    raise ConfigurationError(
        "Namespace has to be specified using the --namespace option or as part of the Kubernetes client configuration"
    )


def connect(kubeconfig_option: Optional[str], namespace_option: Optional[str]) -> tuple[PlatformClient, str]:
    """Create the platform client and resolve the namespace for a run."""
    api_client, discovered_namespace = load_kubernetes_configuration(kubeconfig_option)
    namespace = resolve_namespace(namespace_option, discovered_namespace)
    return PlatformClient(api_client), namespace


def _kubeconfig_namespace(kubeconfig: str) -> Optional[str]:
    # The namespace is optional here, so parsing problems are only logged.
    try:
        _, active_context = k8s_config.list_kube_config_contexts(config_file=kubeconfig)
    except (ConfigException, OSError) as e:
        logger.debug(f"Failed to read default namespace from kubeconfig {kubeconfig}: {e}")
        return None

    if not active_context:
        return None
    return (active_context.get("context") or {}).get("namespace") or None


def _service_account_namespace() -> Optional[str]:
    try:
        return Path(SERVICE_ACCOUNT_NAMESPACE_FILE).read_text().strip() or None
    except OSError as e:
        logger.debug(f"Failed to read namespace from {SERVICE_ACCOUNT_NAMESPACE_FILE}: {e}")
        return None
