import unittest

from labsim.grammar import ArgKind, GrammarError, Handler, arg, child_for, handlers_in_grammar, kw, root
from labsim.handlers import HANDLERS
from labsim.state import Mode


def _leaves(node, seen=None):
    seen = set() if seen is None else seen
    if id(node) in seen:
        return
    seen.add(id(node))
    if not node.children:
        yield node
    for child in node.children.values():
        yield from _leaves(child, seen)


class TestGrammar(unittest.TestCase):
    def test_every_handler_is_implemented_and_reachable(self):
        self.assertEqual(set(HANDLERS), set(Handler))
        self.assertEqual(set(handlers_in_grammar()), set(Handler))

    def test_every_leaf_runs_something(self):
        for mode in Mode:
            for leaf in _leaves(root(mode)):
                self.assertIsNotNone(leaf.handler, f"{mode.value}: dead end at {leaf.token}")
        for leaf in _leaves(root(Mode.USER, "host")):
            self.assertIsNotNone(leaf.handler, leaf.token)

    def test_conflicting_handlers_are_rejected(self):
        with self.assertRaises(GrammarError):
            kw("", kw("show", handler=Handler.SHOW_VERSION), kw("show", handler=Handler.SHOW_IP_ROUTE))

    def test_merging_same_token_combines_children(self):
        node = kw("", kw("show", kw("version", handler=Handler.SHOW_VERSION)), kw("show", kw("vlan", handler=Handler.SHOW_VLAN_BRIEF)))
        self.assertEqual(sorted(node.children["show"].children), ["version", "vlan"])

    def test_two_placeholders_are_rejected(self):
        with self.assertRaises(GrammarError):
            kw("ping", arg("target", ArgKind.WORD, handler=Handler.PING), arg("address", ArgKind.IPV4, handler=Handler.PING))

    def test_exact_literal_beats_prefix(self):
        node = kw("", kw("ip", handler=Handler.IP_ROUTING), kw("ipconfig", handler=Handler.HOST_IPCONFIG))
        self.assertEqual([c.token for c in child_for(node, "ip")], ["ip"])
        self.assertEqual([c.token for c in child_for(node, "ipc")], ["ipconfig"])

    def test_placeholder_only_when_no_literal_matches(self):
        node = kw("", kw("host", handler=Handler.PING), arg("target", ArgKind.WORD, handler=Handler.PING))
        self.assertEqual([c.token for c in child_for(node, "ho")], ["host"])
        self.assertEqual([c.token for c in child_for(node, "10.0.0.1")], ["<target>"])

    def test_grammars_are_shared_and_immutable(self):
        self.assertIs(root(Mode.PRIVILEGED), root(Mode.PRIVILEGED))
        with self.assertRaises(TypeError):
            root(Mode.PRIVILEGED).children["bogus"] = None


if __name__ == "__main__":
    unittest.main()
