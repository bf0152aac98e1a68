import importlib.util
import unittest

from labsim.snapshot import topology_from_dict

HAS_MCP = importlib.util.find_spec("mcp") is not None


@unittest.skipUnless(HAS_MCP, "mcp extra not installed")
class TestLabMcpTools(unittest.TestCase):
    def setUp(self):
        from mcp_server import lab_mcp_server

        self.srv = lab_mcp_server

    def test_new_lab_and_run_commands(self):
        snap = self.srv.new_lab(
            devices=[{"id": "R1", "type": "router"}, {"id": "R2", "type": "router", "hostname": "CORE"}],
            links=[{"a": "R1", "a_port": "Gi0/0", "b": "R2", "b_port": "Gi0/0"}],
        )
        self.assertEqual(self.srv.validate_topology_snapshot(snap), {"ok": True, "problems": []})

        out = self.srv.run_lab_commands(snap, "R2", ["enable", "conf t", "hostname 1bad", "bogus"])
        results = out["results"]
        self.assertEqual([r["command"] for r in results], ["enable", "conf t", "hostname 1bad", "bogus"])
        self.assertEqual(results[0]["modeChange"], "privileged")
        self.assertEqual(results[1]["prompt"], "CORE(config)#")
        self.assertEqual(results[2]["error"]["kind"], "semantic_rejection")
        self.assertEqual(results[3]["error"]["kind"], "unrecognized")

        topo = topology_from_dict(out["snapshot"])
        self.assertEqual(topo.device("R2").mode.value, "global_config")
        # The input snapshot is not modified.
        self.assertEqual(topology_from_dict(snap).device("R2").mode.value, "user")

    def test_prebuilt_lab_is_reachable_end_to_end(self):
        snap = self.srv.generate_two_router_lab_configured()
        out = self.srv.run_lab_commands(snap, "PC1", ["ping 10.0.2.10"])
        self.assertTrue(out["results"][0]["valid"])
        self.assertIn("Reply from 10.0.2.10", out["results"][0]["output"])

    def test_bad_snapshot_is_reported(self):
        res = self.srv.validate_topology_snapshot({"schema": "nope"})
        self.assertFalse(res["ok"])
        self.assertEqual(len(res["problems"]), 1)


if __name__ == "__main__":
    unittest.main()
