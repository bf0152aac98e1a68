import unittest

from labsim import LabSession
from labsim.errors import ErrorKind


def _access_port(lab, sw, port, vlan):
    lab.run(sw, [f"interface {port}", "switchport mode access", f"switchport access vlan {vlan}", "no shutdown", "exit"])


def _trunk_port(lab, sw, port):
    lab.run(sw, [f"interface {port}", "switchport mode trunk", "no shutdown", "exit"])


class TestVlans(unittest.TestCase):
    def setUp(self):
        self.lab = LabSession()
        self.lab.add_device("SW1", "switch")
        self.lab.run("SW1", ["enable", "configure terminal"])

    def test_vlan_name_persists(self):
        self.lab.run("SW1", ["vlan 10", "name USERS", "exit"])
        self.assertEqual(self.lab.device("SW1").vlans[10], "USERS")
        out = self.lab.execute("SW1", "do show vlan brief").output
        self.assertIn("10   USERS", out)
        self.assertIn(" name USERS", self.lab.execute("SW1", "do show running-config").output)

        # Re-entering the VLAN does not reset its name.
        self.lab.run("SW1", ["vlan 10", "exit"])
        self.assertEqual(self.lab.device("SW1").vlans[10], "USERS")

    def test_access_vlan_is_created_on_demand(self):
        self.lab.execute("SW1", "interface fa0/1")
        res = self.lab.execute("SW1", "switchport access vlan 30")
        self.assertTrue(res.valid)
        self.assertIn("% Access VLAN does not exist. Creating vlan 30", res.output)
        self.assertEqual(self.lab.device("SW1").vlans[30], "VLAN0030")
        self.assertIn("30   VLAN0030", self.lab.execute("SW1", "do show vlan brief").output)

    def test_vlan_deletion_rules(self):
        res = self.lab.execute("SW1", "no vlan 1")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.SEMANTIC_REJECTION)
        self.assertEqual(res.output, "%Default VLAN 1 may not be deleted.")

        _access_port(self.lab, "SW1", "fa0/1", 10)
        res = self.lab.execute("SW1", "no vlan 10")
        self.assertFalse(res.valid)
        self.assertEqual(res.output, "% VLAN 10 is in use by FastEthernet0/1")

        self.lab.run("SW1", ["vlan 20", "exit"])
        self.assertTrue(self.lab.execute("SW1", "no vlan 20").valid)
        self.assertNotIn(20, self.lab.device("SW1").vlans)

    def test_vlan_commands_are_switch_only(self):
        self.lab.add_device("R1", "router")
        self.lab.run("R1", ["enable", "configure terminal"])
        res = self.lab.execute("R1", "vlan 10")
        self.assertFalse(res.valid)


class TestL2Forwarding(unittest.TestCase):
    def _pcs(self, lab):
        lab.add_device("PC1", "pc")
        lab.add_device("PC2", "pc")
        lab.execute("PC1", "ip 192.168.1.11 255.255.255.0 192.168.1.1")
        lab.execute("PC2", "ip 192.168.1.12 255.255.255.0 192.168.1.1")

    def test_same_vlan_pcs_reach_each_other(self):
        lab = LabSession()
        lab.add_device("SW1", "switch")
        lab.run("SW1", ["enable", "configure terminal"])
        self._pcs(lab)
        lab.connect("PC1", "Fa0", "SW1", "Fa0/1")
        lab.connect("PC2", "Fa0", "SW1", "Fa0/2")
        _access_port(lab, "SW1", "fa0/1", 10)
        _access_port(lab, "SW1", "fa0/2", 10)

        res = lab.execute("PC1", "ping 192.168.1.12")
        self.assertTrue(res.valid)
        self.assertTrue(res.report.success)
        self.assertIn("Reply from 192.168.1.12", res.output)
        self.assertEqual([h.device for h in res.report.hops], ["PC1", "PC2"])

    def test_vlan_mismatch_is_host_unreachable(self):
        lab = LabSession()
        lab.add_device("SW1", "switch")
        lab.run("SW1", ["enable", "configure terminal"])
        self._pcs(lab)
        lab.connect("PC1", "Fa0", "SW1", "Fa0/1")
        lab.connect("PC2", "Fa0", "SW1", "Fa0/2")
        _access_port(lab, "SW1", "fa0/1", 10)
        _access_port(lab, "SW1", "fa0/2", 20)

        res = lab.execute("PC1", "ping 192.168.1.12")
        self.assertFalse(res.report.success)
        self.assertEqual(res.report.failure.reason, "host unreachable")
        self.assertEqual(res.report.failure.hop, 1)
        self.assertIn("Request timed out.", res.output)

    def test_trunk_carries_allowed_vlans_only(self):
        lab = LabSession()
        for sw in ("SW1", "SW2"):
            lab.add_device(sw, "switch")
            lab.run(sw, ["enable", "configure terminal"])
        self._pcs(lab)
        lab.connect("PC1", "Fa0", "SW1", "Fa0/1")
        lab.connect("PC2", "Fa0", "SW2", "Fa0/1")
        lab.connect("SW1", "Gi0/1", "SW2", "Gi0/1")
        for sw in ("SW1", "SW2"):
            _access_port(lab, sw, "fa0/1", 10)
            _trunk_port(lab, sw, "gi0/1")

        res = lab.execute("PC1", "ping 192.168.1.12")
        self.assertTrue(res.report.success)

        trunk = lab.execute("SW1", "do show interfaces trunk").output
        self.assertIn("Gi0/1", trunk)
        self.assertIn("1-4094", trunk)

        lab.run("SW1", ["interface gi0/1", "switchport trunk allowed vlan 20", "exit"])
        self.assertEqual(lab.device("SW1").interfaces["GigabitEthernet0/1"].trunk_vlans, {20})
        res = lab.execute("PC1", "ping 192.168.1.12")
        self.assertFalse(res.report.success)
        self.assertEqual(res.report.failure.reason, "host unreachable")

        lab.run("SW1", ["interface gi0/1", "switchport trunk allowed vlan add 10", "exit"])
        self.assertTrue(lab.execute("PC1", "ping 192.168.1.12").report.success)

    def test_shut_switch_port_reports_link_down(self):
        lab = LabSession()
        lab.add_device("SW1", "switch")
        lab.run("SW1", ["enable", "configure terminal"])
        self._pcs(lab)
        lab.connect("PC1", "Fa0", "SW1", "Fa0/1")
        lab.connect("PC2", "Fa0", "SW1", "Fa0/2")
        _access_port(lab, "SW1", "fa0/1", 10)
        _access_port(lab, "SW1", "fa0/2", 10)
        lab.run("SW1", ["interface fa0/2", "shutdown", "exit"])

        res = lab.execute("PC1", "ping 192.168.1.12")
        self.assertFalse(res.report.success)
        self.assertEqual(res.report.failure.reason, "link down")


if __name__ == "__main__":
    unittest.main()
