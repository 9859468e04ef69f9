"""モジュール境界判定のテスト。"""

import pytest

from archlint.analyzer.module_resolver import ModuleResolver, split_segments


CURRENT_FILE = "src/features/order/command/createOrder.ts"


@pytest.fixture
def resolver():
    return ModuleResolver()


class TestModuleId:
    """モジュールIDの抽出のテスト。"""

    def test_split_segments(self):
        """/ と \\ の両方で分割する。"""
        assert split_segments("a/b\\c") == ["a", "b", "c"]

    def test_module_id_of(self, resolver):
        """マーカーの次のセグメントがモジュールID。"""
        assert resolver.module_id_of(CURRENT_FILE) == "order"

    def test_module_id_windows_path(self, resolver):
        """Windowsパスも扱える。"""
        assert resolver.module_id_of("C:\\app\\src\\features\\user\\index.ts") == "user"

    @pytest.mark.parametrize("path", [
        "src/lib/utils.ts",
        "src/features/index.ts",
        "src/myfeatures/order/x.ts",
    ])
    def test_outside_module(self, resolver, path):
        """モジュールディレクトリ配下でないファイルはNone。"""
        assert resolver.module_id_of(path) is None

    def test_specifier_module_id(self, resolver):
        """マーカーを含む指定子からモジュールIDを取得する。"""
        assert resolver.specifier_module_id("@/features/user/query/getUser") == "user"
        assert resolver.specifier_module_id("features/user") == "user"
        assert resolver.specifier_module_id("$lib/server/db") is None


class TestResolveAbsolute:
    """マーカーを含む指定子のテスト。"""

    def test_other_module(self, resolver):
        """別モジュールへのimportは越境。"""
        assert resolver.resolve(CURRENT_FILE, "@/features/user/query/getUser") is True

    def test_same_module(self, resolver):
        """同じモジュールへのimportは越境しない。"""
        assert resolver.resolve(CURRENT_FILE, "@/features/order/query/getOrder") is False

    def test_relative_with_marker(self, resolver):
        """マーカーを含む相対指定子もモジュールIDで判定する。"""
        assert resolver.resolve(CURRENT_FILE, "../../../features/order/types") is False
        assert resolver.resolve(CURRENT_FILE, "../../../features/user/types") is True

    def test_file_outside_module(self, resolver):
        """モジュール外のファイルからのimportは判定しない。"""
        assert resolver.resolve("src/routes/+page.server.ts", "@/features/user") is False


class TestResolveRelative:
    """相対指定子のテスト。"""

    @pytest.mark.parametrize("current", [
        CURRENT_FILE,
        "src/features/user/index.ts",
        "src/lib/helpers.ts",
    ])
    def test_shallow_relative_never_crosses(self, resolver, current):
        """1階層の相対importは越境しない。"""
        assert resolver.resolve(current, "../shared/thing") is False

    def test_two_steps_below_threshold(self, resolver):
        """閾値未満の相対importは越境しない。"""
        assert resolver.resolve(CURRENT_FILE, "../../user/query") is False

    def test_three_steps_same_module(self, resolver):
        """3階層遡って同じモジュール名に着地する場合は越境しない。"""
        assert resolver.resolve(CURRENT_FILE, "../../../order/query/getOrder") is False

    def test_three_steps_other_module(self, resolver):
        """3階層遡って別のセグメントに着地する場合は越境。"""
        assert resolver.resolve(CURRENT_FILE, "../../../user/query/getUser") is True

    @pytest.mark.parametrize("segment", ["command", "query", "utils", "types", "shared", "adapter", "flows"])
    def test_three_steps_allow_listed(self, resolver, segment):
        """許可リストのディレクトリは越境とみなさない。"""
        assert resolver.resolve(CURRENT_FILE, f"../../../{segment}/x") is False

    def test_only_parent_steps(self, resolver):
        """遡るだけで着地先がない指定子は越境しない。"""
        assert resolver.resolve(CURRENT_FILE, "../../..") is False

    def test_package_import(self, resolver):
        """パッケージ名の指定子は越境しない。"""
        assert resolver.resolve(CURRENT_FILE, "zod") is False
        assert resolver.resolve(CURRENT_FILE, "") is False

    def test_custom_threshold(self):
        """閾値は設定で変更できる。"""
        resolver = ModuleResolver(relative_depth_threshold=2)
        assert resolver.resolve(CURRENT_FILE, "../../user/query") is True


class TestOrchestrationLayer:
    """統合層のimport判定のテスト。"""

    @pytest.mark.parametrize("specifier", [
        "@/flows/checkout",
        "../../../../flows/checkout",
        "flows/checkout",
        "..\\..\\flows\\checkout",
    ])
    def test_imports_flows(self, resolver, specifier):
        """モジュール内からflowsをimportしている。"""
        assert resolver.imports_orchestration_layer(CURRENT_FILE, specifier) is True

    def test_outside_module_root(self, resolver):
        """モジュールルート外のファイルは対象外。"""
        assert resolver.imports_orchestration_layer("src/flows/checkout/index.ts", "@/flows/payment") is False

    def test_other_import(self, resolver):
        """flowsを含まない指定子は対象外。"""
        assert resolver.imports_orchestration_layer(CURRENT_FILE, "@/features/order/types") is False
        assert resolver.imports_orchestration_layer(CURRENT_FILE, "./myflows/x") is False
