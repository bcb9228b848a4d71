import pytest

from whispersub.config_loader import DEFAULT_CONFIG, ConfigLoader
from whispersub.exceptions import ConfigurationError


def test_optional_missing_file_gives_defaults(tmp_path):
    config = ConfigLoader().load_config(str(tmp_path / "config.yaml"), required=False)
    assert config == DEFAULT_CONFIG
    config['media_extensions'].append('.xyz')
    assert '.xyz' not in DEFAULT_CONFIG['media_extensions']


def test_required_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader().load_config(str(tmp_path / "config.yaml"))


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("device: cpu\nwindow_seconds: 15\noutput_dir: subs\n", encoding="utf-8")
    config = ConfigLoader().load_config(str(path))
    assert config['device'] == 'cpu'
    assert config['window_seconds'] == 15
    assert config['output_dir'] == 'subs'
    assert config['timing_log'] == DEFAULT_CONFIG['timing_log']


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert ConfigLoader().load_config(str(path)) == DEFAULT_CONFIG


@pytest.mark.parametrize("content", [
    "device: [unclosed",
    "- just\n- a list\n",
    "window_seconds: 0\n",
    "download_timeout: fast\n",
    "device: tpu\n",
    "media_extensions: .wav\n",
    "temp_dir: ''\n",
])
def test_invalid_configuration(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(str(path))


def test_directory_is_not_a_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigLoader().load_config(str(tmp_path))
