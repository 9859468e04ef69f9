"""設定管理のテスト。"""

import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from archlint.config import Config, ConfigError, LOG_LEVEL_ENV


class TestConfigDefaults:
    """デフォルト値のテスト。"""

    def test_default_values(self):
        """デフォルト値のテスト。"""
        config = Config()
        assert config.module_marker == "features"
        assert config.relative_depth_threshold == 3
        assert "flows" in config.intra_module_dirs
        assert config.aggregate_combinators == ["Promise.all", "Promise.allSettled"]
        assert config.enabled_rules == []
        assert config.workers == 4
        assert config.validate() == []

    def test_default_yaml_matches_defaults(self):
        """同梱のデフォルト設定ファイルはデフォルト値と一致する。"""
        default_file = Path(__file__).parent.parent / "config" / "default_config.yaml"
        config = Config.from_yaml(str(default_file))
        expected = Config().to_dict()
        actual = config.to_dict()
        actual["log_level"] = expected["log_level"]
        assert actual == expected


class TestConfigLoading:
    """YAMLの読み込みと保存のテスト。"""

    def test_from_dict(self):
        """辞書から設定を作成する。"""
        config = Config.from_dict({"module_marker": "modules", "workers": 2, "log_file": None})
        assert config.module_marker == "modules"
        assert config.workers == 2
        assert config.log_file is None

    def test_from_dict_unknown_key(self):
        """未知のキーはエラー。"""
        with pytest.raises(ConfigError):
            Config.from_dict({"module_markers": "features"})

    def test_from_dict_coerces_numbers(self):
        """数値項目は数字の文字列も受け付ける。"""
        config = Config.from_dict({"workers": "8", "relative_depth_threshold": 2})
        assert config.workers == 8
        assert config.relative_depth_threshold == 2
        assert config.validate() == []

    @pytest.mark.parametrize("data", [
        {"workers": "many"},
        {"workers": 2.5},
        {"workers": True},
        {"severity_overrides": []},
        {"intra_module_dirs": "flows"},
        {"data_access_tokens": ["repo", 1]},
        {"module_marker": ["features"]},
        {"log_file": 10},
    ])
    def test_from_dict_type_error(self, data):
        """型が合わない値はConfigError。"""
        with pytest.raises(ConfigError):
            Config.from_dict(data)

    def test_yaml_round_trip(self):
        """保存した設定を読み込むと同じ値になる。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "archlint.yaml"
            config = Config(disabled_rules=["no-default-param"], severity_overrides={"no-n-plus-one-query": "warn"})
            config.save_yaml(str(path))

            loaded = Config.from_yaml(str(path))
            assert loaded.disabled_rules == ["no-default-param"]
            assert loaded.severity_overrides == {"no-n-plus-one-query": "warn"}

    def test_env_overrides_log_level(self, monkeypatch):
        """環境変数がログレベルを上書きする。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "archlint.yaml"
            path.write_text("log_level: INFO\n", encoding="utf-8")
            monkeypatch.setenv(LOG_LEVEL_ENV, "DEBUG")

            assert Config.from_yaml(str(path)).log_level == "DEBUG"

    def test_invalid_yaml(self):
        """YAMLとして不正なファイルはConfigError。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "archlint.yaml"
            path.write_text("workers: [1, 2\n", encoding="utf-8")

            with pytest.raises(ConfigError):
                Config.from_yaml(str(path))

    def test_non_mapping_root(self):
        """ルートがマッピングでない場合はConfigError。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "archlint.yaml"
            path.write_text("- a\n- b\n", encoding="utf-8")

            with pytest.raises(ConfigError):
                Config.from_yaml(str(path))

    def test_missing_file(self):
        """存在しないファイルはConfigError。"""
        with pytest.raises(ConfigError):
            Config.from_yaml("/nonexistent/archlint.yaml")


class TestConfigValidation:
    """設定検証のテスト。"""

    def test_unknown_rule(self):
        """未知のルール名を検出する。"""
        errors = Config(enabled_rules=["no-such-rule"]).validate()
        assert any("no-such-rule" in e for e in errors)

    def test_invalid_severity(self):
        """不正な重大度を検出する。"""
        errors = Config(severity_overrides={"no-default-param": "fatal"}).validate()
        assert len(errors) == 1

    def test_invalid_values(self):
        """数値の範囲と必須項目を検証する。"""
        errors = Config(module_marker="", workers=0, relative_depth_threshold=0).validate()
        assert len(errors) == 3

    def test_invalid_combinator(self):
        """集約コンビネーターは "Object.method" 形式。"""
        assert Config(aggregate_combinators=["all"]).validate()


class TestSourceDiscovery:
    """ソースファイル探索のテスト。"""

    def test_get_source_files(self):
        """ディレクトリを再帰的に探索し、除外ディレクトリを読み飛ばす。"""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "src" / "features" / "order").mkdir(parents=True)
            (root / "node_modules" / "pkg").mkdir(parents=True)

            files = [
                root / "src" / "features" / "order" / "service.ts",
                root / "src" / "app.js",
                root / "src" / "order.ts.estree.json",
                root / "src" / "types.d.ts",
                root / "src" / "README.md",
                root / "node_modules" / "pkg" / "index.js",
            ]
            for f in files:
                f.write_text("", encoding="utf-8")

            found = Config().get_source_files([str(root)])

            assert found == sorted([
                str(files[0]),
                str(files[1]),
                str(files[2]),
            ])

    def test_explicit_file(self):
        """明示的に指定したファイルは除外設定に関係なく対象。"""
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "dist" / "bundle.js"
            path.parent.mkdir()
            path.write_text("", encoding="utf-8")

            assert Config().get_source_files([str(path)]) == [str(path)]

    def test_missing_path(self):
        """存在しないパスは無視する。"""
        assert Config().get_source_files(["/nonexistent/src"]) == []
