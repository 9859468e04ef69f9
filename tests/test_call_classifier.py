"""呼び出し分類のテスト。"""

import pytest

from archlint.analyzer.call_classifier import CallClassifier
from archlint.models.classification import ClassificationResult, NO_CLASSIFICATION
from archlint.models.syntax_node import SyntaxNode

from helpers import await_, call, expr, ident, make_tree, member


def _call_node(expression):
    """式文を1つ持つ木を作り、最も外側のノードを返す。"""
    tree = make_tree(expr(expression))
    return tree.root.children[0].child("expression")


@pytest.fixture
def classifier():
    return CallClassifier()


class TestReceiverTier:
    """レシーバー名による判定のテスト。"""

    def test_repository_receiver(self, classifier):
        """レシーバー名にrepositoryを含む呼び出し。"""
        result = classifier.classify(_call_node(call("orderRepository.findAll", "query")))
        assert result == ClassificationResult(is_data_access=True, method_name="findAll")

    @pytest.mark.parametrize("receiver", ["repo", "userRepo", "ORDER_REPOSITORY", "repository"])
    def test_receiver_tokens(self, classifier, receiver):
        """トークンは大文字小文字を区別せず部分一致で判定する。"""
        result = classifier.classify(_call_node(call(f"{receiver}.save", "x")))
        assert result.is_data_access
        assert result.method_name == "save"

    def test_non_repository_receiver(self, classifier):
        """データアクセスのトークンを含まないレシーバーは対象外。"""
        assert classifier.classify(_call_node(call("mathUtils.findMax", "values"))) == NO_CLASSIFICATION

    def test_member_receiver_is_not_identifier(self, classifier):
        """レシーバーが識別子でない場合はレシーバー名で判定しない。"""
        assert not classifier.classify(_call_node(call("this.repo.find", "x")))

    def test_plain_function_call(self, classifier):
        """メンバーアクセスでない呼び出しは対象外。"""
        assert not classifier.classify(_call_node(call("findAll")))

    def test_computed_member(self, classifier):
        """計算プロパティのメンバーアクセスは対象外。"""
        callee = member("repo", "find", computed=True)
        assert not classifier.classify(_call_node(call(callee, "x")))


class TestVerbTier:
    """動詞パターンとアクセサー呼び出しによる判定のテスト。"""

    def test_accessor_chain(self, classifier):
        """Container.getUserRepository().findAll() はデータアクセス。"""
        node = _call_node(call(member(call("Container.getUserRepository"), "findAll")))
        result = classifier.classify(node)
        assert result.is_data_access
        assert result.method_name == "findAll"

    @pytest.mark.parametrize("method", ["get", "findOne", "searchItems", "listAll", "fetchById", "loadUser", "queryRaw"])
    def test_data_access_verbs(self, classifier, method):
        """データアクセス動詞のメソッド名。"""
        node = _call_node(call(member(call("container.orderRepository"), method)))
        assert classifier.classify(node).method_name == method

    def test_get_requires_exact_match(self, classifier):
        """getは完全一致のみ（getterなどは対象外）。"""
        node = _call_node(call(member(call("Container.getUserRepository"), "getter")))
        assert not classifier.classify(node)

    def test_verb_without_accessor(self, classifier):
        """アクセサー呼び出しを経由しない場合は動詞だけでは判定しない。"""
        node = _call_node(call(member(call("Container.getService"), "findAll")))
        assert not classifier.classify(node)

    def test_non_verb_with_accessor(self, classifier):
        """データアクセス動詞でなければ対象外。"""
        node = _call_node(call(member(call("Container.getUserRepository"), "save")))
        assert not classifier.classify(node)


class TestAwaitUnwrap:
    """awaitの展開のテスト。"""

    def test_await_call(self, classifier):
        """awaitされた呼び出しは同じ結果になる。"""
        awaited = _call_node(await_(call("repo.find", "id")))
        plain = _call_node(call("repo.find", "id"))
        assert classifier.classify(awaited) == classifier.classify(plain)
        assert classifier.classify(awaited).method_name == "find"

    def test_await_non_call(self, classifier):
        """呼び出し以外をawaitしている場合は対象外。"""
        assert not classifier.classify(_call_node(await_(ident("pending"))))

    def test_unwrap_optional_chain(self):
        """オプショナルチェーンの呼び出しも展開する。"""
        inner = call("repo.find", "id")
        node = _call_node(await_({"type": "ChainExpression", "expression": inner}))
        unwrapped = CallClassifier.unwrap_await(node)
        assert unwrapped is not None
        assert unwrapped.type == "CallExpression"

    def test_unwrap_passthrough(self):
        """await以外のノードはそのまま返す。"""
        node = SyntaxNode(type="CallExpression")
        assert CallClassifier.unwrap_await(node) is node
        assert CallClassifier.unwrap_await(None) is None


class TestClassifierProperties:
    """分類器の性質のテスト。"""

    def test_pure(self, classifier):
        """同じノードには常に同じ結果を返す。"""
        node = _call_node(call("orderRepository.findAll"))
        results = [classifier.classify(node) for _ in range(3)]
        assert results[0] == results[1] == results[2]

    def test_malformed_node(self, classifier):
        """フィールドが欠けたノードでも例外を出さない。"""
        assert not classifier.classify(SyntaxNode(type="CallExpression"))
        assert not classifier.classify(SyntaxNode(type="Identifier"))
        assert not classifier.classify(None)

    def test_custom_tokens(self):
        """トークンは設定で変更できる。"""
        classifier = CallClassifier(data_access_tokens=["dao"])
        assert classifier.classify(_call_node(call("userDao.find"))).is_data_access
        assert not classifier.classify(_call_node(call("userRepo.find")))
