import yaml

from tellocmd.config import Settings, TELLO_IP
from tellocmd.initialization import (
    AppSettings, load_app_settings, create_directories, initialize_client, connect_client
)


def test_missing_file_is_empty(tmp_path):
    settings = Settings(str(tmp_path / "none.yaml")).load()
    assert settings.as_dict() == {}
    assert settings.get("drone.speed") is None


def test_dotted_get_and_set(tmp_path):
    settings = Settings(str(tmp_path / "cfg.yaml"))
    settings.set("video.photo_folder", "shots")
    settings.set("debug", True)
    assert settings.get("video.photo_folder") == "shots"
    assert settings.get("video") == {"photo_folder": "shots"}
    assert settings.get("video.missing", "x") == "x"
    assert settings.get("debug.deeper", 1) == 1


def test_get_or_add_writes_missing_key(tmp_path):
    path = tmp_path / "sub" / "cfg.yaml"
    settings = Settings(str(path))
    assert settings.get_or_add("drone.speed", 50) == 50
    with open(path) as f:
        assert yaml.safe_load(f) == {"drone": {"speed": 50}}


def test_get_or_add_keeps_and_coerces_stored_values(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("drone:\n  speed: '70'\ndebug: 'yes'\nvideo:\n  record_on_connect: off\n")
    settings = Settings(str(path)).load()
    assert settings.get_or_add("drone.speed", 50) == 70
    assert settings.get_or_add("debug", False) is True
    assert settings.get_or_add("video.record_on_connect", True) is False


def test_get_or_add_falls_back_on_bad_value(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("drone:\n  speed: fast\n")
    settings = Settings(str(path)).load()
    assert settings.get_or_add("drone.speed", 50) == 50


def test_load_app_settings_fills_defaults(tmp_path):
    path = tmp_path / "TelloConfig.yaml"
    app = load_app_settings(str(path))
    assert app == AppSettings()
    assert app.ip == TELLO_IP
    stored = yaml.safe_load(path.read_text())
    assert stored["drone"]["speed"] == 50
    assert stored["video"]["ffmpeg_path"] == "ffmpeg"
    assert stored["log"]["level"] == "INFO"


def test_load_app_settings_reads_file(tmp_path):
    path = tmp_path / "TelloConfig.yaml"
    path.write_text("drone:\n  ip: 10.0.0.5\n  speed: 30\nvideo:\n  photo_folder: pics\n"
                    "  stream_on_connect: true\n")
    app = load_app_settings(str(path))
    assert app.ip == "10.0.0.5"
    assert app.speed == 30
    assert app.photo_folder == "pics"
    assert app.stream_on_connect is True
    assert app.record_on_connect is False


def test_create_directories(tmp_path):
    app = AppSettings(photo_folder=str(tmp_path / "p"), video_folder=str(tmp_path / "v"))
    create_directories(app)
    create_directories(app)
    assert (tmp_path / "p").is_dir()
    assert (tmp_path / "v").is_dir()


def test_initialize_client_applies_speed_locally():
    client, interpreter = initialize_client(AppSettings(ip="127.0.0.1", speed=40))
    assert client.speed == 40
    assert interpreter.client is client
    assert client.channel.address == ("127.0.0.1", 8889)


def test_initialize_client_ignores_invalid_speed():
    client, _ = initialize_client(AppSettings(ip="127.0.0.1", speed=500))
    assert client.speed == 100


def test_connect_client_starts_recording_when_configured(client, channel, popen, tmp_path):
    app = AppSettings(speed=30, video_folder=str(tmp_path), record_on_connect=True)
    assert connect_client(client, app)
    assert "speed 30" in channel.messages
    assert client.recording
    assert popen.alive[0].args[-1].startswith(str(tmp_path))


def test_connect_client_starts_live_view_when_configured(client, popen):
    assert connect_client(client, AppSettings(stream_on_connect=True))
    assert client.live_view
    assert popen.alive[0].args[-1] == "Tello"


def test_connect_client_failure(client, channel):
    channel.reply("command", None)
    assert not connect_client(client, AppSettings(record_on_connect=True))
    assert channel.messages == ["command"]
