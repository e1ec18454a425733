from django.test import SimpleTestCase

from realtime.registry import ConnectionRegistry, LivenessMonitor, PeriodicTask

from .utils import FakeConnection


class ConnectionRegistryTests(SimpleTestCase):
	def test_identity_removed_with_its_last_connection(self):
		registry = ConnectionRegistry()
		phone, tablet = FakeConnection("phone"), FakeConnection("tablet")

		self.assertEqual(registry.add("u1", phone), 1)
		self.assertEqual(registry.add("u1", tablet), 2)
		self.assertEqual(registry.remove("u1", phone), 1)
		self.assertIn("u1", registry)

		self.assertEqual(registry.remove("u1", tablet), 0)
		self.assertNotIn("u1", registry)
		self.assertEqual(len(registry), 0)

	def test_remove_unknown_is_a_no_op(self):
		registry = ConnectionRegistry()
		self.assertEqual(registry.remove("ghost", FakeConnection()), 0)

	def test_all_connections_spans_identities(self):
		registry = ConnectionRegistry()
		a, b, c = FakeConnection("a"), FakeConnection("b"), FakeConnection("c")
		registry.add("u1", a)
		registry.add("u1", b)
		registry.add("u2", c)

		self.assertCountEqual(registry.all_connections(), [a, b, c])
		self.assertCountEqual(registry.identities(), ["u1", "u2"])
		self.assertEqual(registry.count("u1"), 2)


class LivenessMonitorTests(SimpleTestCase):
	def setUp(self):
		self.connections = set()
		self.reaped = []

		async def on_dead(conn):
			self.connections.discard(conn)
			self.reaped.append(conn)

		self.monitor = LivenessMonitor("test", lambda: self.connections, on_dead, interval=30)

	async def test_silent_open_connection_survives_sweeps(self):
		conn = FakeConnection()
		self.connections.add(conn)

		self.assertEqual(await self.monitor.sweep(), 0)
		self.assertEqual(await self.monitor.sweep(), 0)
		self.assertEqual(await self.monitor.sweep(), 0)

		self.assertEqual(conn.pings, 3)
		self.assertFalse(conn.terminated)
		self.assertIn(conn, self.connections)
		self.assertEqual(self.reaped, [])

	async def test_closed_transport_reaped_without_ping(self):
		closed, open_ = FakeConnection("closed", is_open=False), FakeConnection("open")
		self.connections.update({closed, open_})

		reaped = await self.monitor.sweep()

		self.assertEqual(reaped, 1)
		self.assertEqual(self.reaped, [closed])
		self.assertEqual(closed.pings, 0)
		self.assertEqual(open_.pings, 1)

	async def test_failed_ping_terminates_and_reaps(self):
		broken, healthy = FakeConnection("broken"), FakeConnection("healthy")

		async def boom():
			raise ConnectionError("reset")

		broken.ping = boom
		self.connections.update({broken, healthy})

		reaped = await self.monitor.sweep()

		self.assertEqual(reaped, 1)
		self.assertTrue(broken.terminated)
		self.assertEqual(self.reaped, [broken])
		self.assertEqual(healthy.pings, 1)
		self.assertFalse(healthy.terminated)

	async def test_failed_terminate_still_reaps(self):
		broken = FakeConnection("broken")

		async def boom(*args, **kwargs):
			raise ConnectionError("reset")

		broken.ping = boom
		broken.terminate = boom
		self.connections.add(broken)

		self.assertEqual(await self.monitor.sweep(), 1)
		self.assertEqual(self.reaped, [broken])


class PeriodicTaskTests(SimpleTestCase):
	async def test_start_is_idempotent_and_stop_cancels(self):
		calls = []

		async def tick():
			calls.append(1)

		task = PeriodicTask("tick", 60, tick)
		task.start()
		first = task._task
		task.start()

		self.assertIs(task._task, first)
		self.assertTrue(task.is_running)

		await task.stop()
		self.assertFalse(task.is_running)
		self.assertEqual(calls, [])
