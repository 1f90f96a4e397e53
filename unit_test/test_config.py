# -*- coding: utf-8 -*-
"""
配置加载与ServiceAccount令牌解析测试
"""

from unittest.mock import patch

import pytest
from kubernetes.config.config_exception import ConfigException

from src.core.config import K8sConfig, Settings
from src.core.k8s_utils import _normalize_bearer, resolve_service_account_auth

ENV_KEYS = [
    "DEBUG",
    "LOG_LEVEL",
    "DATABASE_PATH",
    "KIALI_URL",
    "KIALI_TOKEN",
    "KIALI_INSECURE",
    "KIALI_REQUIRE_OAUTH",
    "KIALI_TIMEOUT",
    "K8S_IN_CLUSTER",
    "KUBECONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestSettings:
    """测试配置加载"""

    def test_defaults(self):
        settings = Settings()
        assert settings.app_name == "MeshPilot"
        assert settings.log_level == "INFO"
        assert settings.database.path == "meshpilot.db"
        assert settings.kiali.url is None
        assert settings.kiali.timeout == 30.0
        assert settings.kiali.require_oauth is False
        assert settings.k8s.in_cluster is True

    def test_env(self, monkeypatch):
        monkeypatch.setenv("KIALI_URL", "http://kiali.istio-system:20001")
        monkeypatch.setenv("KIALI_TOKEN", "abc")
        monkeypatch.setenv("KIALI_INSECURE", "True")
        monkeypatch.setenv("KIALI_REQUIRE_OAUTH", "true")
        monkeypatch.setenv("KIALI_TIMEOUT", "12.5")
        monkeypatch.setenv("K8S_IN_CLUSTER", "false")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.kiali.url == "http://kiali.istio-system:20001"
        assert settings.kiali.token == "abc"
        assert settings.kiali.insecure is True
        assert settings.kiali.require_oauth is True
        assert settings.kiali.timeout == 12.5
        assert settings.k8s.in_cluster is False
        assert settings.log_level == "DEBUG"

    def test_invalid_timeout_keeps_default(self, monkeypatch):
        monkeypatch.setenv("KIALI_TIMEOUT", "soon")
        assert Settings().kiali.timeout == 30.0

    def test_yaml_file_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KIALI_URL", "http://from-env")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "log_level: WARNING\n"
            "database:\n"
            "  path: /data/instances.db\n"
            "kiali:\n"
            "  url: https://kiali.example\n"
            "  timeout: 5\n"
            "k8s:\n"
            "  in_cluster: false\n",
            encoding="utf-8",
        )

        settings = Settings(config_file=str(config_file))

        assert settings.log_level == "WARNING"
        assert settings.database.path == "/data/instances.db"
        assert settings.kiali.url == "https://kiali.example"
        assert settings.kiali.timeout == 5
        assert settings.k8s.in_cluster is False

    def test_missing_file_is_ignored(self, tmp_path):
        settings = Settings(config_file=str(tmp_path / "absent.yaml"))
        assert settings.kiali.url is None

    def test_empty_file_is_ignored(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("", encoding="utf-8")
        assert Settings(config_file=str(config_file)).database.path == "meshpilot.db"


class TestNormalizeBearer:
    """测试Bearer头规范化"""

    def test_values(self):
        assert _normalize_bearer(None) is None
        assert _normalize_bearer("") is None
        assert _normalize_bearer("bearer abc") == "Bearer abc"
        assert _normalize_bearer("Bearer abc") == "Bearer abc"
        assert _normalize_bearer("abc") == "Bearer abc"
        assert _normalize_bearer("Basic xyz") == "Basic xyz"


def _set_token(token):
    def loader(*args, client_configuration=None, **kwargs):
        client_configuration.api_key["authorization"] = token

    return loader


class TestResolveServiceAccountAuth:
    """测试ServiceAccount令牌解析"""

    def test_in_cluster_token(self):
        with patch(
            "src.core.k8s_utils.config.load_incluster_config",
            side_effect=_set_token("bearer sa-token"),
        ), patch("src.core.k8s_utils.config.load_kube_config") as load_kube_config:
            auth = resolve_service_account_auth(K8sConfig(in_cluster=True))

        assert auth == "Bearer sa-token"
        load_kube_config.assert_not_called()

    def test_falls_back_to_kubeconfig(self):
        with patch(
            "src.core.k8s_utils.config.load_incluster_config",
            side_effect=ConfigException("not in cluster"),
        ), patch(
            "src.core.k8s_utils.config.load_kube_config",
            side_effect=_set_token("Bearer dev-token"),
        ) as load_kube_config:
            auth = resolve_service_account_auth(
                K8sConfig(in_cluster=True, kubeconfig_path="/tmp/kubeconfig")
            )

        assert auth == "Bearer dev-token"
        assert load_kube_config.call_args.kwargs["config_file"] == "/tmp/kubeconfig"

    def test_kubeconfig_without_token(self):
        with patch("src.core.k8s_utils.config.load_kube_config"):
            assert resolve_service_account_auth(K8sConfig(in_cluster=False)) is None

    def test_no_config_available(self):
        with patch(
            "src.core.k8s_utils.config.load_kube_config",
            side_effect=ConfigException("Invalid kube-config file"),
        ):
            assert resolve_service_account_auth(K8sConfig(in_cluster=False)) is None
