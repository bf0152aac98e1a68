import unittest

from labsim import LabSession
from labsim.errors import ErrorKind, ModeStackError
from labsim.state import Mode, ModeStack


class TestModes(unittest.TestCase):
    def setUp(self):
        self.lab = LabSession()
        self.lab.add_device("R1", "router")

    def test_initial_prompt(self):
        self.assertEqual(self.lab.device("R1").prompt(), "R1>")

    def test_nested_modes_and_exit(self):
        res = self.lab.execute("R1", "enable")
        self.assertEqual(res.mode_change, Mode.PRIVILEGED)
        self.assertEqual(res.prompt, "R1#")

        res = self.lab.execute("R1", "conf t")
        self.assertEqual(res.prompt, "R1(config)#")
        self.assertIn("Enter configuration commands", res.output)

        res = self.lab.execute("R1", "interface g0/0")
        self.assertEqual(res.prompt, "R1(config-if)#")
        self.assertEqual(self.lab.device("R1").context.interface, "GigabitEthernet0/0")

        # Entering another sub-mode from a sub-mode goes through global config.
        res = self.lab.execute("R1", "router ospf 1")
        self.assertEqual(res.prompt, "R1(config-router)#")
        self.assertEqual(self.lab.device("R1").mode_stack.items, [Mode.PRIVILEGED, Mode.GLOBAL_CONFIG])
        self.assertIsNone(self.lab.device("R1").context.interface)

        self.assertEqual(self.lab.execute("R1", "exit").prompt, "R1(config)#")
        self.assertEqual(self.lab.execute("R1", "exit").prompt, "R1#")

        res = self.lab.execute("R1", "exit")
        self.assertTrue(res.valid)
        self.assertTrue(res.close_session)
        self.assertEqual(res.prompt, "R1>")

    def test_end_unwinds_in_one_step(self):
        self.lab.run("R1", ["enable", "configure terminal", "line vty 0 4"])
        self.assertEqual(self.lab.device("R1").mode, Mode.LINE_CONFIG)
        res = self.lab.execute("R1", "end")
        self.assertEqual(res.mode_change, Mode.PRIVILEGED)
        self.assertEqual(len(self.lab.device("R1").mode_stack), 0)

    def test_exit_in_user_mode_closes_session(self):
        res = self.lab.execute("R1", "exit")
        self.assertTrue(res.valid)
        self.assertTrue(res.close_session)
        self.assertEqual(self.lab.device("R1").mode, Mode.USER)

    def test_disable(self):
        self.lab.execute("R1", "enable")
        res = self.lab.execute("R1", "disable")
        self.assertEqual(res.mode_change, Mode.USER)

    def test_do_runs_exec_command_and_restores_mode(self):
        self.lab.run("R1", ["enable", "configure terminal", "interface g0/0"])
        res = self.lab.execute("R1", "do show ip interface brief")
        self.assertTrue(res.valid)
        self.assertIn("GigabitEthernet0/0", res.output)
        self.assertIsNone(res.mode_change)
        dev = self.lab.device("R1")
        self.assertEqual(dev.mode, Mode.INTERFACE_CONFIG)
        self.assertEqual(dev.context.interface, "GigabitEthernet0/0")

    def test_do_exit_keeps_the_session_open(self):
        self.lab.run("R1", ["enable", "configure terminal"])
        for payload in ("do exit", "do disable"):
            res = self.lab.execute("R1", payload)
            self.assertTrue(res.valid, payload)
            self.assertFalse(res.close_session, payload)
            self.assertIsNone(res.mode_change, payload)
            self.assertEqual(res.prompt, "R1(config)#")
            self.assertEqual(self.lab.device("R1").mode, Mode.GLOBAL_CONFIG)

    def test_do_error_caret_points_into_the_payload(self):
        self.lab.run("R1", ["enable", "configure terminal", "interface g0/0"])
        res = self.lab.execute("R1", "do shw run")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.UNRECOGNIZED)
        self.assertEqual(res.output, " " * (len("R1(config-if)#") + 3) + "^\n% Invalid input detected at '^' marker.")
        self.assertEqual(self.lab.device("R1").mode, Mode.INTERFACE_CONFIG)

    def test_hostname_change(self):
        self.lab.run("R1", ["enable", "configure terminal"])
        res = self.lab.execute("R1", "hostname CORE1")
        self.assertEqual(res.hostname_change, "CORE1")
        self.assertEqual(res.prompt, "CORE1(config)#")

        res = self.lab.execute("R1", "hostname 9bad")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.SEMANTIC_REJECTION)

    def test_cross_mode_command_is_rejected(self):
        res = self.lab.execute("R1", "configure terminal")
        self.assertFalse(res.valid)
        self.assertEqual(res.error.kind, ErrorKind.UNRECOGNIZED)
        self.assertEqual(self.lab.device("R1").mode, Mode.USER)

    def test_mode_stack_is_bounded(self):
        stack = ModeStack(capacity=2)
        stack.push(Mode.PRIVILEGED)
        stack.push(Mode.GLOBAL_CONFIG)
        with self.assertRaises(ModeStackError):
            stack.push(Mode.INTERFACE_CONFIG)
        stack.clear()
        with self.assertRaises(ModeStackError):
            stack.pop()

    def test_copy_running_config(self):
        self.lab.execute("R1", "enable")
        self.assertIn("startup-config is not present", self.lab.execute("R1", "show startup-config").output)
        res = self.lab.execute("R1", "copy running-config startup-config")
        self.assertIn("[OK]", res.output)
        self.assertIn("hostname R1", self.lab.execute("R1", "show startup-config").output)


if __name__ == "__main__":
    unittest.main()
