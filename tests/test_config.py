"""Tests for configuration loading."""

from pathlib import Path

from mitigate.config import DATA_DIR, MITIGATE_HOME, Config, load_config


def write_conf(tmp_path, text):
    path = tmp_path / "mitigate.conf"
    path.write_text(text)
    return path


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / "missing.conf")
    assert config == Config()
    assert config.role == "operator"
    assert config.data_path == DATA_DIR


def test_reads_known_keys(tmp_path):
    path = write_conf(
        tmp_path,
        """
# Who is acting
ACTOR=alice@example.com
ROLE=Admin
DATA_DIR="~/remediation data"  # quoted with comment
SNAPSHOT_FILE=/tmp/snapshot.json # unquoted comment
PLAYBOOK_FILE='/etc/mitigate/playbooks.json'
AUDIT_LOG_FILE=/var/log/mitigate-audit.json
AUDIT_LOG_MAX_ENTRIES=50
""",
    )
    config = load_config(path)
    assert config.actor == "alice@example.com"
    assert config.role == "admin"
    assert config.data_path == Path.home() / "remediation data"
    assert config.snapshot_path == Path("/tmp/snapshot.json")
    assert config.playbook_path == Path("/etc/mitigate/playbooks.json")
    assert config.audit_log_path == Path("/var/log/mitigate-audit.json")
    assert config.audit_log_max_entries == 50


def test_ignores_unknown_keys_and_junk_lines(tmp_path):
    path = write_conf(tmp_path, "TELEGRAM_TOKEN=abc\nnot a setting\n\nACTOR=bob\n")
    config = load_config(path)
    assert config.actor == "bob"


def test_invalid_max_entries_keeps_default(tmp_path, caplog):
    path = write_conf(tmp_path, "AUDIT_LOG_MAX_ENTRIES=lots\n")
    assert load_config(path).audit_log_max_entries == 500
    assert "AUDIT_LOG_MAX_ENTRIES" in caplog.text


def test_derived_paths_follow_data_dir(tmp_path):
    config = Config(data_dir=str(tmp_path))
    assert config.snapshot_path == tmp_path / "snapshot.json"
    assert config.audit_log_path == tmp_path / "audit-log.json"
    assert config.playbook_path == MITIGATE_HOME / "config" / "playbooks.json"


def test_self_approval_flag(tmp_path):
    assert load_config(write_conf(tmp_path, "SELF_APPROVAL_ALLOWED=true\n")).self_approval_allowed is True
    assert load_config(write_conf(tmp_path, "SELF_APPROVAL_ALLOWED=no\n")).self_approval_allowed is False
