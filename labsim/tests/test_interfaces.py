import unittest

from labsim import LabSession, Topology, add_device, connect_ports, disconnect_ports, execute
from labsim.errors import ErrorKind


def _connected(dev):
    return [r for r in dev.routes if r.source == "connected"]


class TestInterfaces(unittest.TestCase):
    def setUp(self):
        self.lab = LabSession()
        self.lab.add_device("R1", "router")
        self.lab.add_device("R2", "router")
        self.lab.connect("R1", "Gi0/0", "R2", "Gi0/0")
        for dev in ("R1", "R2"):
            self.lab.run(dev, ["enable", "configure terminal", "interface g0/0"])

    def test_new_devices_start_shut_down(self):
        for itf in self.lab.device("R1").interfaces.values():
            self.assertFalse(itf.admin_up)
            self.assertFalse(itf.oper_up)
        self.assertFalse(self.lab.topology.links[0].up)

    def test_link_needs_both_ends_admin_up(self):
        self.lab.execute("R1", "no shutdown")
        r1 = self.lab.device("R1").interfaces["GigabitEthernet0/0"]
        self.assertTrue(r1.admin_up)
        self.assertFalse(r1.oper_up)
        self.assertFalse(self.lab.topology.links[0].up)

        res = self.lab.execute("R2", "no shutdown")
        self.assertIn("changed state to up", res.output)
        self.assertTrue(self.lab.topology.links[0].up)
        self.assertTrue(self.lab.device("R1").interfaces["GigabitEthernet0/0"].oper_up)
        self.assertTrue(self.lab.device("R2").interfaces["GigabitEthernet0/0"].oper_up)

        # Shutting one side takes the peer operationally down as well.
        self.lab.execute("R2", "shutdown")
        self.assertFalse(self.lab.topology.links[0].up)
        r1 = self.lab.device("R1").interfaces["GigabitEthernet0/0"]
        self.assertTrue(r1.admin_up)
        self.assertFalse(r1.oper_up)

    def test_connected_route_follows_address_and_status(self):
        self.lab.execute("R1", "ip address 10.0.0.1 255.255.255.0")
        self.assertEqual(_connected(self.lab.device("R1")), [])

        self.lab.execute("R1", "no shutdown")
        self.lab.execute("R2", "no shutdown")
        routes = _connected(self.lab.device("R1"))
        self.assertEqual(len(routes), 1)
        self.assertEqual((routes[0].network, routes[0].mask), ("10.0.0.0", "255.255.255.0"))
        self.assertEqual(routes[0].interface, "GigabitEthernet0/0")
        self.assertEqual(routes[0].distance, 0)

        self.lab.execute("R1", "no ip address")
        self.assertEqual(_connected(self.lab.device("R1")), [])

    def test_address_rules(self):
        self.lab.execute("R1", "ip address 10.0.0.1 255.255.255.0")
        self.lab.execute("R1", "interface g0/1")

        res = self.lab.execute("R1", "ip address 10.0.0.5 255.255.255.0")
        self.assertFalse(res.valid)
        self.assertIn("overlaps", res.output)

        res = self.lab.execute("R1", "ip address 10.1.0.0 255.255.255.0")
        self.assertFalse(res.valid)
        self.assertEqual(res.output, "Bad mask /24 for address 10.1.0.0")

        res = self.lab.execute("R1", "interface g0/2.10")
        self.assertTrue(res.valid)
        res = self.lab.execute("R1", "ip address 10.10.0.1 255.255.255.0")
        self.assertFalse(res.valid)
        self.lab.execute("R1", "encapsulation dot1q 10")
        self.assertTrue(self.lab.execute("R1", "ip address 10.10.0.1 255.255.255.0").valid)

    def test_switch_ports_reject_addresses(self):
        self.lab.add_device("SW1", "switch")
        self.lab.run("SW1", ["enable", "configure terminal", "interface fa0/1"])
        res = self.lab.execute("SW1", "ip address 10.0.0.9 255.255.255.0")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.SEMANTIC_REJECTION)
        self.assertEqual(res.output, "% IP addresses may not be configured on L2 links.")

        self.lab.execute("SW1", "interface vlan 1")
        self.assertTrue(self.lab.execute("SW1", "ip address 10.0.0.9 255.255.255.0").valid)

    def test_loopback_is_created_up(self):
        self.lab.execute("R1", "interface loopback0")
        self.lab.execute("R1", "ip address 1.1.1.1 255.255.255.255")
        lo = self.lab.device("R1").interfaces["Loopback0"]
        self.assertTrue(lo.oper_up)
        self.assertIn("1.1.1.1/32", [str(r.prefix) for r in _connected(self.lab.device("R1"))])

    def test_failed_command_leaves_topology_untouched(self):
        before = self.lab.topology
        res = self.lab.execute("R1", "ip address 10.0.0.1 255.0.255.0")
        self.assertFalse(res.valid)
        self.assertIs(res.topology, before)


class TestTopologyValues(unittest.TestCase):
    def test_value_api_never_mutates_input(self):
        empty = Topology()
        one = add_device(empty, "R1", "router")
        self.assertEqual(empty.devices, {})
        two = add_device(one, "R2", "router")
        linked = connect_ports(two, "R1", "g0/0", "R2", "g0/0")
        self.assertEqual(two.links, [])
        self.assertEqual(len(linked.links), 1)
        self.assertEqual(linked.links[0].link_id, "L1")

        res = execute("enable", "R1", linked)
        self.assertEqual(linked.device("R1").mode.value, "user")
        self.assertEqual(res.topology.device("R1").mode.value, "privileged")

        unlinked = disconnect_ports(linked, "R2", "GigabitEthernet0/0")
        self.assertEqual(unlinked.links, [])
        self.assertEqual(len(linked.links), 1)

    def test_connect_rejects_used_ports(self):
        topo = add_device(add_device(add_device(Topology(), "R1", "router"), "R2", "router"), "R3", "router")
        topo = connect_ports(topo, "R1", "g0/0", "R2", "g0/0")
        with self.assertRaises(ValueError):
            connect_ports(topo, "R3", "g0/0", "R2", "g0/0")
        with self.assertRaises(ValueError):
            connect_ports(topo, "R3", "g0/0", "R3", "g0/0")
        with self.assertRaises(ValueError):
            connect_ports(topo, "R3", "loopback0", "R1", "g0/1")

    def test_remove_device_drops_its_links(self):
        lab = LabSession()
        lab.add_device("R1", "router")
        lab.add_device("R2", "router")
        lab.connect("R1", "g0/0", "R2", "g0/0")
        lab.remove_device("R2")
        self.assertEqual(lab.topology.links, [])
        self.assertNotIn("R2", lab.topology.devices)

    def test_unknown_device_type(self):
        with self.assertRaises(ValueError):
            add_device(Topology(), "X1", "firewall")


if __name__ == "__main__":
    unittest.main()
