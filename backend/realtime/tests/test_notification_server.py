from unittest.mock import patch

from asgiref.sync import async_to_sync
from django.test import SimpleTestCase

from realtime.exceptions import InvalidTokenError, MissingTokenError
from realtime.notifications import NotificationFanoutServer, notify_all, notify_user
from realtime.protocol import Notification, NotificationType

from .utils import FakeConnection, StaticVerifier


def sample_notification(**overrides):
	fields = {
		"id": "n1",
		"user": "u1",
		"type": NotificationType.FRIEND_REQUEST,
		"title": "New friend request",
		"message": "Amira wants to connect",
	}
	fields.update(overrides)
	return Notification(**fields)


class NotificationAuthTests(SimpleTestCase):
	def setUp(self):
		self.server = NotificationFanoutServer(verifier=StaticVerifier({"good": "u1"}))

	async def test_missing_and_empty_tokens(self):
		for token in (None, ""):
			with self.subTest(token=token):
				with self.assertRaises(MissingTokenError) as ctx:
					await self.server.authenticate(token)
				self.assertEqual(ctx.exception.close_reason, "Authentication required")

	async def test_unknown_token(self):
		with self.assertRaises(InvalidTokenError) as ctx:
			await self.server.authenticate("bad")
		self.assertEqual(ctx.exception.close_reason, "Invalid token")

	async def test_verifier_crash_is_an_invalid_token(self):
		class Broken:
			def verify(self, token):
				raise RuntimeError("key service down")

		server = NotificationFanoutServer(verifier=Broken())
		with self.assertRaises(InvalidTokenError):
			await server.authenticate("anything")

	async def test_valid_token(self):
		self.assertEqual(await self.server.authenticate("good"), "u1")


class NotificationFanoutTests(SimpleTestCase):
	def setUp(self):
		self.server = NotificationFanoutServer(verifier=StaticVerifier({}))

	async def test_register_acknowledges_connection(self):
		conn = FakeConnection()
		count = await self.server.register("u1", conn)

		self.assertEqual(count, 1)
		self.assertEqual(conn.sent, [{"type": "connected", "message": "Connected to notification server"}])
		self.assertEqual(self.server.connection_count("u1"), 1)

	async def test_malformed_frame_answered_in_band(self):
		conn = FakeConnection()
		await self.server.register("u1", conn)

		await self.server.receive_frame(conn, "not json")

		self.assertFalse(conn.terminated)
		self.assertEqual(self.server.connection_count("u1"), 1)
		errors = conn.events_of_type("error")
		self.assertEqual(len(errors), 1)
		self.assertEqual(errors[0]["message"], "Invalid message format")

	async def test_push_to_user_without_connections(self):
		delivered = await self.server.push_to_user("u1", sample_notification())
		self.assertFalse(delivered)

	async def test_push_reaches_every_open_device(self):
		phone, tablet, closed = FakeConnection("phone"), FakeConnection("tablet"), FakeConnection("closed")
		for conn in (phone, tablet, closed):
			await self.server.register("u1", conn)
		closed.is_open = False
		other = FakeConnection("other")
		await self.server.register("u2", other)

		delivered = await self.server.push_to_user("u1", sample_notification())

		self.assertTrue(delivered)
		for conn in (phone, tablet):
			self.assertEqual(conn.sent[-1]["type"], "notification")
			self.assertEqual(conn.sent[-1]["data"]["title"], "New friend request")
		self.assertEqual(len(closed.sent), 1)
		self.assertEqual(len(other.sent), 1)

	async def test_push_accepts_int_user_id(self):
		conn = FakeConnection()
		await self.server.register("42", conn)
		self.assertTrue(await self.server.push_to_user(42, {"id": "n1"}))

	async def test_only_closed_connections_reports_failure(self):
		conn = FakeConnection()
		await self.server.register("u1", conn)
		conn.is_open = False

		self.assertFalse(await self.server.push_to_user("u1", sample_notification()))

	async def test_send_failure_isolated_and_dropped(self):
		good, bad = FakeConnection("good"), FakeConnection("bad")
		await self.server.register("u1", good)
		await self.server.register("u1", bad)
		bad.fail_sends = True

		delivered = await self.server.push_to_user("u1", sample_notification())

		self.assertTrue(delivered)
		self.assertEqual(good.sent[-1]["type"], "notification")
		self.assertEqual(self.server.connection_count("u1"), 1)

	async def test_broadcast_counts_deliveries(self):
		for user_id, name in (("u1", "a"), ("u1", "b"), ("u2", "c")):
			await self.server.register(user_id, FakeConnection(name))

		sent = await self.server.broadcast(sample_notification(type=NotificationType.PUBLIC_TRANSPORT_SEARCH))

		self.assertEqual(sent, 3)

	async def test_unregister_removes_empty_user(self):
		conn = FakeConnection()
		await self.server.register("u1", conn)

		await self.server.unregister(conn)
		await self.server.unregister(conn)

		self.assertEqual(self.server.connected_user_count(), 0)
		self.assertFalse(await self.server.push_to_user("u1", sample_notification()))

	async def test_heartbeat_keeps_silent_devices(self):
		phone, tablet = FakeConnection("phone"), FakeConnection("tablet")
		await self.server.register("u1", phone)
		await self.server.register("u1", tablet)

		await self.server.liveness.sweep()
		await self.server.liveness.sweep()

		self.assertFalse(phone.terminated)
		self.assertFalse(tablet.terminated)
		self.assertEqual(phone.pings, 2)
		self.assertEqual(self.server.connection_count("u1"), 2)
		self.assertTrue(await self.server.push_to_user("u1", sample_notification()))

	async def test_heartbeat_reaps_broken_transport(self):
		broken, healthy = FakeConnection("broken"), FakeConnection("healthy")
		await self.server.register("u1", broken)
		await self.server.register("u1", healthy)
		broken.fail_sends = True

		await self.server.liveness.sweep()

		self.assertTrue(broken.terminated)
		self.assertFalse(healthy.terminated)
		self.assertEqual(self.server.connection_count("u1"), 1)


class NotifyHelperTests(SimpleTestCase):
	def setUp(self):
		self.server = NotificationFanoutServer(verifier=StaticVerifier({}))
		patcher = patch('realtime.servers.get_notification_server', return_value=self.server)
		patcher.start()
		self.addCleanup(patcher.stop)

	def test_sync_helpers_use_process_server(self):
		device = FakeConnection('device')
		async_to_sync(self.server.register)('u1', device)

		self.assertTrue(notify_user('u1', sample_notification()))
		self.assertFalse(notify_user('u2', sample_notification()))
		self.assertEqual(notify_all(sample_notification()), 1)
		self.assertEqual(len(device.events_of_type('notification')), 2)
