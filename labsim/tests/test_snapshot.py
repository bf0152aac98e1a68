import json
import unittest

from labsim import LabSession, dumps, loads, topology_from_dict, topology_to_dict
from labsim.snapshot import SCHEMA


def _lab():
    lab = LabSession()
    lab.add_device("R1", "router")
    lab.add_device("R2", "router")
    lab.add_device("SW1", "switch")
    lab.connect("R1", "g0/0", "R2", "g0/0")
    lab.connect("R1", "g0/1", "SW1", "fa0/1")
    lab.run(
        "R1",
        [
            "enable",
            "configure terminal",
            "hostname EDGE",
            "interface g0/0",
            "ip address 10.0.12.1 255.255.255.0",
            "no shutdown",
            "exit",
            "access-list 1 permit any",
            "ip route 0.0.0.0 0.0.0.0 10.0.12.2",
            "router ospf 1",
            "network 10.0.12.0 0.0.0.255 area 0",
        ],
    )
    lab.run("R2", ["enable", "configure terminal", "interface g0/0", "ip address 10.0.12.2 255.255.255.0", "no shutdown"])
    lab.run("SW1", ["enable", "configure terminal", "vlan 10", "name USERS", "exit", "interface fa0/1", "switchport access vlan 10"])
    return lab


class TestSnapshot(unittest.TestCase):
    def test_round_trip_preserves_everything(self):
        lab = _lab()
        data = topology_to_dict(lab.topology)
        self.assertEqual(data["schema"], SCHEMA)
        restored = topology_from_dict(data)
        self.assertEqual(restored, lab.topology)

        # Also through text, including VLAN ids used as mapping keys.
        restored = loads(dumps(lab.topology, indent=2))
        self.assertEqual(restored, lab.topology)
        self.assertEqual(restored.device("SW1").vlans[10], "USERS")
        self.assertEqual(restored.device("R1").hostname, "EDGE")
        self.assertEqual(restored.device("R1").mode, lab.device("R1").mode)
        self.assertEqual(restored.device("R1").context.router, "ospf")

    def test_restored_session_keeps_working(self):
        lab = _lab()
        again = LabSession.from_snapshot(json.loads(json.dumps(lab.snapshot())))
        res = again.execute("R1", "do ping 10.0.12.2")
        self.assertTrue(res.report.success)
        self.assertEqual(res.prompt, "EDGE(config-router)#")
        # The original is unaffected by commands on the restored copy.
        again.execute("R1", "end")
        self.assertEqual(lab.device("R1").prompt(), "EDGE(config-router)#")

    def test_unknown_schema_is_rejected(self):
        data = topology_to_dict(_lab().topology)
        data["schema"] = "something-else/v9"
        with self.assertRaises(ValueError):
            topology_from_dict(data)
        with self.assertRaises(ValueError):
            topology_from_dict(["not", "a", "snapshot"])

    def test_inconsistent_links_are_rejected(self):
        data = topology_to_dict(_lab().topology)
        data["topology"]["links"][0]["a"]["port"] = "GigabitEthernet9/9"
        with self.assertRaises(ValueError) as cm:
            topology_from_dict(data)
        self.assertIn("Inconsistent snapshot", str(cm.exception))

        data = topology_to_dict(_lab().topology)
        data["topology"]["links"][1]["up"] = True
        with self.assertRaises(ValueError):
            topology_from_dict(data)

    def test_malformed_shape_is_rejected(self):
        data = topology_to_dict(_lab().topology)
        data["topology"]["devices"]["R1"]["mode"] = "superuser"
        with self.assertRaises(ValueError):
            topology_from_dict(data)


if __name__ == "__main__":
    unittest.main()
