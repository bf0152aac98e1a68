import unittest

from labsim import LabSession
from labsim.state import ACLRule, AccessList


def _chain():
    """R1 (lo0 1.1.1.1) -- R2 -- R3, with R1 routing toward R3 through R2."""
    lab = LabSession()
    for dev in ("R1", "R2", "R3"):
        lab.add_device(dev, "router")
        lab.run(dev, ["enable", "configure terminal"])
    lab.connect("R1", "Gi0/0", "R2", "Gi0/0")
    lab.connect("R2", "Gi0/1", "R3", "Gi0/0")
    for dev, ifname, ip, mask in (
        ("R1", "Loopback0", "1.1.1.1", "255.255.255.255"),
        ("R1", "Gi0/0", "10.0.12.1", "255.255.255.0"),
        ("R2", "Gi0/0", "10.0.12.2", "255.255.255.0"),
        ("R2", "Gi0/1", "10.0.23.2", "255.255.255.0"),
        ("R3", "Gi0/0", "10.0.23.3", "255.255.255.0"),
    ):
        lab.run(dev, [f"interface {ifname}", f"ip address {ip} {mask}", "no shutdown", "exit"])
    lab.execute("R1", "ip route 10.0.23.0 255.255.255.0 10.0.12.2")
    return lab


class TestAclFiltering(unittest.TestCase):
    def test_standard_acl_denies_by_source(self):
        lab = _chain()
        self.assertTrue(lab.execute("R1", "do ping 10.0.23.3").report.success)

        lab.run(
            "R2",
            [
                "access-list 1 deny 10.0.12.0 0.0.0.255",
                "access-list 1 permit any",
                "interface g0/0",
                "ip access-group 1 in",
                "exit",
            ],
        )

        res = lab.execute("R1", "do ping 10.0.23.3")
        self.assertTrue(res.valid)
        self.assertFalse(res.report.success)
        self.assertEqual(res.report.failure.hop, 2)
        self.assertEqual(res.report.failure.device, "R2")
        self.assertEqual(res.report.failure.reason, "ACL deny")
        self.assertIn("U.U.U", res.output)

        # A different source address falls through to the permit.
        res = lab.execute("R1", "do ping 10.0.23.3 source loopback0")
        self.assertTrue(res.report.success)

    def test_single_deny_blocks_every_source(self):
        lab = _chain()
        lab.run("R2", ["access-list 1 deny 10.0.12.0 0.0.0.255", "interface g0/0", "ip access-group 1 in", "exit"])

        # Without a trailing permit, the implicit deny catches other sources too.
        res = lab.execute("R1", "do ping 10.0.23.3 source loopback0")
        self.assertFalse(res.report.success)
        self.assertEqual(res.report.failure.device, "R2")
        self.assertEqual(res.report.failure.reason, "ACL deny")

    def test_outbound_named_acl(self):
        lab = _chain()
        lab.run(
            "R1",
            [
                "ip access-list extended NO-ICMP",
                "deny icmp any host 10.0.23.3",
                "permit ip any any",
                "exit",
                "interface g0/0",
                "ip access-group NO-ICMP out",
                "exit",
            ],
        )
        res = lab.execute("R1", "do ping 10.0.23.3")
        self.assertEqual(res.report.failure.hop, 1)
        self.assertEqual(res.report.failure.reason, "ACL deny")
        self.assertTrue(lab.execute("R1", "do ping 10.0.12.2").report.success)

        lab.run("R1", ["interface g0/0", "no ip access-group NO-ICMP out", "exit"])
        self.assertTrue(lab.execute("R1", "do ping 10.0.23.3").report.success)

    def test_show_access_lists(self):
        lab = _chain()
        lab.run("R2", ["access-list 1 deny 10.0.0.0 0.0.0.255", "access-list 1 permit any"])
        lab.run("R2", ["ip access-list extended WEB", "permit tcp host 10.0.12.1 any", "exit"])
        out = lab.execute("R2", "do show access-lists").output
        self.assertEqual(
            out.splitlines(),
            [
                "Standard IP access list 1",
                "    10 deny 10.0.0.0 0.0.0.255",
                "    20 permit any",
                "Extended IP access list WEB",
                "    10 permit tcp host 10.0.12.1 any",
            ],
        )
        running = lab.execute("R2", "do show running-config").output
        self.assertIn("access-list 1 deny 10.0.0.0 0.0.0.255", running)
        self.assertIn("ip access-list extended WEB", running)

    def test_digit_like_names_are_listed_as_named(self):
        lab = _chain()
        lab.run("R2", ["access-list 1 permit any", "ip access-list standard ²", "permit any", "exit"])
        out = lab.execute("R2", "do show access-lists").output
        self.assertEqual(out.splitlines()[-2:], ["Standard IP access list ²", "    10 permit any"])
        self.assertIn("ip access-list standard ²", lab.execute("R2", "do show running-config").output)

    def test_access_group_needs_existing_list(self):
        lab = _chain()
        lab.execute("R2", "interface g0/0")
        res = lab.execute("R2", "ip access-group 5 in")
        self.assertFalse(res.valid)
        self.assertEqual(res.output, "% Access list not found")
        self.assertIsNone(lab.device("R2").interfaces["GigabitEthernet0/0"].acl_in)

    def test_standard_list_rejects_protocol_entries(self):
        lab = _chain()
        res = lab.execute("R2", "access-list 10 permit tcp any any")
        self.assertFalse(res.valid)


class TestAccessListSemantics(unittest.TestCase):
    def test_first_match_wins_and_implicit_deny(self):
        acl = AccessList(
            name="100",
            rules=[
                ACLRule(action="deny", protocol="icmp", source="10.0.0.0", source_wildcard="0.0.0.255"),
                ACLRule(action="permit", protocol="ip"),
            ],
        )
        self.assertFalse(acl.permits("icmp", "10.0.0.7", "192.0.2.1"))
        self.assertTrue(acl.permits("tcp", "10.0.0.7", "192.0.2.1"))
        self.assertTrue(acl.permits("icmp", "10.0.1.7", "192.0.2.1"))

        only_deny = AccessList(name="2", kind="standard", rules=[ACLRule(action="deny", source="10.0.0.1", source_wildcard="0.0.0.0")])
        self.assertFalse(only_deny.permits("icmp", "10.9.9.9", "192.0.2.1"))

    def test_empty_list_filters_nothing(self):
        self.assertTrue(AccessList(name="3", kind="standard").permits("icmp", "10.0.0.1", "10.0.0.2"))


if __name__ == "__main__":
    unittest.main()
