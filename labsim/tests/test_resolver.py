import unittest

from labsim import LabSession
from labsim.errors import ErrorKind, INCOMPLETE_COMMAND, INVALID_INPUT
from labsim.grammar import Handler, root
from labsim.resolver import ResolutionError, ResolvedCommand, resolve, tokenize
from labsim.state import Mode, new_device


class TestResolver(unittest.TestCase):
    def test_unique_prefixes_match_full_command(self):
        short = resolve("en", root(Mode.USER))
        full = resolve("enable", root(Mode.USER))
        self.assertIsInstance(short, ResolvedCommand)
        self.assertEqual(short.handler, full.handler)
        self.assertEqual(short.handler, Handler.ENABLE)

        self.assertEqual(resolve("conf t", root(Mode.PRIVILEGED)).handler, Handler.CONFIGURE_TERMINAL)
        self.assertEqual(resolve("sh ip int br", root(Mode.PRIVILEGED)).handler, Handler.SHOW_IP_INTERFACE_BRIEF)

    def test_blank_line_is_a_no_op(self):
        self.assertIsNone(resolve("   ", root(Mode.USER)))
        self.assertEqual(tokenize(""), [])

    def test_ambiguous_prefix(self):
        res = resolve("e", root(Mode.PRIVILEGED))
        self.assertIsInstance(res, ResolutionError)
        self.assertEqual(res.kind, ErrorKind.AMBIGUOUS)
        self.assertEqual(res.message, '% Ambiguous command:  "e"')

    def test_incomplete_command(self):
        res = resolve("configure", root(Mode.PRIVILEGED))
        self.assertEqual(res.kind, ErrorKind.INCOMPLETE)
        self.assertEqual(res.message, INCOMPLETE_COMMAND)

    def test_unrecognized_token_position_and_column(self):
        res = resolve("show bogus", root(Mode.PRIVILEGED))
        self.assertEqual(res.kind, ErrorKind.UNRECOGNIZED)
        self.assertEqual(res.token, "bogus")
        self.assertEqual(res.position, 1)
        self.assertEqual(res.column, 5)
        self.assertEqual(res.message, INVALID_INPUT)

    def test_invalid_argument(self):
        res = resolve("ip address 10.0.0.1 255.0.255.0", root(Mode.INTERFACE_CONFIG))
        self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT)
        self.assertEqual(res.position, 3)
        self.assertEqual(res.column, len("ip address 10.0.0.1 "))

        res = resolve("vlan 5000", root(Mode.GLOBAL_CONFIG))
        self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT)

    def test_commands_from_other_modes_are_unrecognized(self):
        res = resolve("hostname R9", root(Mode.PRIVILEGED))
        self.assertEqual(res.kind, ErrorKind.UNRECOGNIZED)
        res = resolve("configure terminal", root(Mode.GLOBAL_CONFIG))
        self.assertEqual(res.kind, ErrorKind.UNRECOGNIZED)

    def test_interface_names_are_normalised(self):
        router = new_device("router", "R1")
        res = resolve("int g0/1", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.args["interface"], "GigabitEthernet0/1")

        res = resolve("interface loopback 0", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.args["interface"], "Loopback0")

        res = resolve("interface g0/0.10", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.args["interface"], "GigabitEthernet0/0.10")

        res = resolve("interface g9/9", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT)

        # SVIs exist only on switches.
        res = resolve("interface vlan 10", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT)
        switch = new_device("switch", "SW1")
        res = resolve("interface vlan 10", root(Mode.GLOBAL_CONFIG), switch)
        self.assertEqual(res.args["interface"], "Vlan10")

    def test_line_argument_takes_rest_of_input(self):
        res = resolve("description   Uplink to core  ", root(Mode.INTERFACE_CONFIG))
        self.assertEqual(res.handler, Handler.DESCRIPTION)
        self.assertEqual(res.args["text"], "Uplink to core")

    def test_choice_binds_the_chosen_keyword(self):
        res = resolve("ip nat ins", root(Mode.INTERFACE_CONFIG))
        self.assertEqual(res.handler, Handler.NAT_DIRECTION)
        self.assertEqual(res.args["nat"], "inside")

    def test_acl_entries_bind_action_and_addresses(self):
        res = resolve("access-list 1 deny 10.0.0.0 0.0.0.255", root(Mode.GLOBAL_CONFIG))
        self.assertEqual(res.handler, Handler.ACCESS_LIST_NUMBERED)
        self.assertEqual(res.args, {"number": 1, "action": "deny", "src": "10.0.0.0", "src_wildcard": "0.0.0.255"})

        res = resolve("permit tcp host 10.0.0.5 any", root(Mode.ACL_CONFIG))
        self.assertEqual(res.handler, Handler.ACL_RULE)
        self.assertEqual(res.args["protocol"], "tcp")
        self.assertEqual(res.args["src"], "10.0.0.5")
        self.assertEqual(res.args["dst"], "any")

    def test_trunk_vlan_list(self):
        res = resolve("switchport trunk allowed vlan 10,20-22", root(Mode.INTERFACE_CONFIG))
        self.assertEqual(res.args["vlans"], [10, 20, 21, 22])
        res = resolve("switchport trunk allowed vlan add 30", root(Mode.INTERFACE_CONFIG))
        self.assertEqual(res.args["op"], "add")

    def test_non_ascii_digits_are_invalid_arguments(self):
        for line, mode in (
            ("vlan ²", Mode.GLOBAL_CONFIG),
            ("vlan ٣", Mode.GLOBAL_CONFIG),
            ("access-list ¹ permit any", Mode.GLOBAL_CONFIG),
            ("router ospf ¹", Mode.GLOBAL_CONFIG),
            ("switchport trunk allowed vlan 10,2²", Mode.INTERFACE_CONFIG),
            ("encapsulation dot1Q ٣", Mode.INTERFACE_CONFIG),
        ):
            res = resolve(line, root(mode))
            self.assertIsInstance(res, ResolutionError, line)
            self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT, line)

        router = new_device("router", "R1")
        res = resolve("interface g0/0.٣", root(Mode.GLOBAL_CONFIG), router)
        self.assertEqual(res.kind, ErrorKind.INVALID_ARGUMENT)

    def test_non_ascii_digits_come_back_as_cli_errors(self):
        lab = LabSession()
        lab.add_device("SW1", "switch")
        lab.run("SW1", ["enable", "configure terminal"])
        res = lab.execute("SW1", "vlan ²")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.INVALID_ARGUMENT)
        self.assertTrue(res.output.endswith(INVALID_INPUT))
        self.assertEqual(lab.device("SW1").mode, Mode.GLOBAL_CONFIG)


if __name__ == "__main__":
    unittest.main()
