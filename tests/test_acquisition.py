"""
==============================================================================
Acquisition Controller Tests
==============================================================================

Session transitions, resource release and lookup triggering.

==============================================================================
"""

import asyncio

from nutriscan.acquisition import (
    AcquisitionMode,
    AcquisitionSession,
    LiveCaptureHandle,
    end_live_scan,
    enter_manual,
    record_barcode,
    record_lookup_error,
)
from nutriscan.core import exceptions
from nutriscan.decoder import CameraPermission


COLA = "5000112637922"


class TestSessionTransitions:
    """Pure transition functions."""

    def test_manual_entry_trims_and_clears_error(self):
        session = AcquisitionSession(error="old")
        session = enter_manual(session, "  123456  ")
        assert session.barcode == "123456"
        assert session.error is None
        assert session.mode == AcquisitionMode.IDLE

    def test_blank_manual_entry_clears_barcode(self):
        session = enter_manual(AcquisitionSession(barcode="123"), "   ")
        assert session.barcode is None

    def test_lookup_error_keeps_barcode(self):
        session = record_lookup_error(AcquisitionSession(barcode="123", product_found=True), "boom")
        assert session.barcode == "123"
        assert session.error == "boom"
        assert session.product_found is False

    def test_end_live_scan_on_idle_is_noop(self):
        session = end_live_scan(AcquisitionSession())
        assert session == AcquisitionSession()

    def test_detecting_shown_barcode_keeps_result(self):
        session = AcquisitionSession(mode=AcquisitionMode.LIVE_SCANNING, barcode="123", product_found=True)
        session = record_barcode(session, "123")
        assert session.mode == AcquisitionMode.IDLE
        assert session.product_found is True

        session = record_barcode(session, "456")
        assert session.barcode == "456"
        assert session.product_found is False

    def test_retyping_shown_barcode_keeps_result(self):
        session = AcquisitionSession(barcode="123", error="API Error: 404 - Not Found")
        assert enter_manual(session, " 123 ").error == "API Error: 404 - Not Found"
        assert enter_manual(session, "1234").error is None


class TestImageDecode:
    """Choosing an image."""

    def test_decoded_image_sets_barcode_and_looks_up(self, make_controller, off_transport):
        async def scenario():
            controller = make_controller()
            await controller.choose_image(f"code:{COLA}".encode(), "image/png")
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        session = controller.session
        assert session.mode == AcquisitionMode.IDLE
        assert session.barcode == COLA
        assert session.error is None
        assert session.image_preview.startswith("data:image/png;base64,")
        assert session.product_found is True
        assert len(off_transport.requests) == 1

    def test_image_without_code_sets_error(self, make_controller, off_transport):
        async def scenario():
            controller = make_controller()
            await controller.choose_image(b"a picture of a cat", "image/jpeg")
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.barcode is None
        assert controller.session.error == "No barcode detected. Please try a different image."
        assert off_transport.requests == []

    def test_manual_entry_supersedes_pending_decode(self, make_controller, decoder, wait_for):
        async def scenario():
            controller = make_controller()
            task = asyncio.create_task(controller.choose_image(b"slow:999", "image/png"))
            await wait_for(lambda: controller.session.mode == AcquisitionMode.DECODING_IMAGE)

            await controller.manual_entry("123")
            decoder.gate.set()
            await task
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.barcode == "123"
        assert controller.session.mode == AcquisitionMode.IDLE


class TestLiveScan:
    """Live scanning with a camera stream."""

    def test_detection_releases_stream_and_sets_barcode(self, make_controller, camera, events, wait_for):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            assert controller.session.mode == AcquisitionMode.LIVE_SCANNING

            stream = camera.streams[-1]
            stream.push("nothing here")
            stream.push(f"code:{COLA}")
            await wait_for(lambda: controller.session.barcode is not None)
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.barcode == COLA
        assert controller.session.product_found is True
        assert camera.open_streams == []
        assert events[:2] == ["decoder.stop", "stream.stop"]

    def test_stop_twice_is_idempotent(self, make_controller, camera):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            await controller.stop_live_scan()
            await controller.stop_live_scan()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.error is None
        assert camera.streams[0].stop_calls == 1

    def test_stop_without_start(self, make_controller):
        async def scenario():
            controller = make_controller()
            await controller.stop_live_scan()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session == AcquisitionSession()

    def test_choose_image_tears_down_live_scan(self, make_controller, camera):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            await controller.choose_image(b"code:42", "image/png")
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.capture is None
        assert camera.open_streams == []
        assert controller.session.barcode == "42"

    def test_restart_never_holds_two_streams(self, make_controller, camera):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            await controller.start_live_scan()
            return controller

        controller = asyncio.run(scenario())
        assert len(camera.streams) == 2
        assert len(camera.open_streams) == 1
        assert controller.is_live

    def test_permission_denied(self, make_controller, camera):
        camera.permission = CameraPermission.DENIED

        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.error == exceptions.camera_permission_denied().message
        assert controller.capture is None

    def test_unsupported_camera_never_opens(self, make_controller, camera):
        camera.permission = CameraPermission.UNSUPPORTED

        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.error == "Live scanning is not supported on this device."
        assert camera.streams == []

    def test_reported_stream_error(self, make_controller, camera):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            await controller.report_stream_error("track ended")
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.error == "Error starting video stream."
        assert camera.open_streams == []

    def test_device_failure_ends_scan(self, make_controller, camera, wait_for):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            camera.streams[-1].break_device()
            await wait_for(lambda: controller.session.mode == AcquisitionMode.IDLE)
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.error == "Error starting video stream."
        assert camera.open_streams == []

    def test_manual_entry_stops_live_scan(self, make_controller, camera):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            await controller.manual_entry("123")
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.mode == AcquisitionMode.IDLE
        assert controller.session.barcode == "123"
        assert camera.open_streams == []

    def test_detecting_typed_barcode_keeps_found_product(self, make_controller, camera, off_transport, wait_for):
        async def scenario():
            controller = make_controller(manual_entry_stops_live_scan=False)
            await controller.start_live_scan()
            await controller.manual_entry(COLA)
            await controller.wait_for_lookup()
            camera.streams[-1].push(f"code:{COLA}")
            await wait_for(lambda: controller.session.mode == AcquisitionMode.IDLE)
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert len(off_transport.requests) == 1
        assert controller.session.barcode == COLA
        assert controller.session.product_found is True
        assert controller.workflow.product is not None
        assert camera.open_streams == []

    def test_manual_entry_can_leave_live_scan_running(self, make_controller, camera):
        async def scenario():
            controller = make_controller(manual_entry_stops_live_scan=False)
            await controller.start_live_scan()
            await controller.manual_entry("123")
            await controller.wait_for_lookup()
            mode = controller.session.mode
            await controller.close()
            return controller, mode

        controller, mode = asyncio.run(scenario())
        assert mode == AcquisitionMode.LIVE_SCANNING
        assert controller.session.barcode == "123"
        assert camera.open_streams == []


class TestClearAndLookup:
    """Clearing and lookup triggering."""

    def test_clear_after_detection(self, make_controller, camera, wait_for):
        async def scenario():
            controller = make_controller()
            await controller.start_live_scan()
            camera.streams[-1].push(f"code:{COLA}")
            await wait_for(lambda: controller.session.barcode == COLA)
            await controller.wait_for_lookup()
            await controller.clear()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session == AcquisitionSession()
        assert camera.streams[0].stopped
        assert camera.streams[0].stop_calls >= 1
        assert controller.workflow.product is None

    def test_lookup_failure_keeps_barcode(self, make_controller):
        async def scenario():
            controller = make_controller()
            await controller.manual_entry("0000000000000")
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.barcode == "0000000000000"
        assert controller.session.error == "API Error: 404 - Not Found"
        assert controller.session.product_found is False

    def test_same_barcode_looks_up_once(self, make_controller, off_transport):
        async def scenario():
            controller = make_controller()
            await controller.manual_entry(COLA)
            await controller.wait_for_lookup()
            await controller.manual_entry(COLA)
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert len(off_transport.requests) == 1
        assert controller.session.product_found is True

    def test_blank_entry_does_not_look_up(self, make_controller, off_transport):
        async def scenario():
            controller = make_controller()
            await controller.manual_entry("   ")
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.barcode is None
        assert off_transport.requests == []

    def test_example_cola(self, make_controller):
        products = []

        async def scenario():
            controller = make_controller(on_product=products.append)
            await controller.manual_entry(COLA)
            await controller.wait_for_lookup()
            return controller

        controller = asyncio.run(scenario())
        assert controller.session.product_found is True
        assert products[0].name == "Example Cola"
        assert products[0].nutrition_grade == "c"
        assert products[0].grade_class == "nutrition-grade-c"

    def test_listener_sees_every_change(self, make_controller):
        snapshots = []

        async def scenario():
            controller = make_controller(on_change=snapshots.append)
            await controller.manual_entry(COLA)
            await controller.wait_for_lookup()

        asyncio.run(scenario())
        assert snapshots[0]["barcode"] == COLA
        assert snapshots[-1]["product_found"] is True


class TestLiveCaptureHandle:
    """Release ordering and failure isolation."""

    def test_decoder_failure_does_not_block_stream_stop(self, decoder, camera, events):
        async def scenario():
            stream = await camera.open()
            handle = LiveCaptureHandle(decoder, stream)
            decoder.fail_on_stop = True
            handle.release()
            handle.release()
            return stream, handle

        stream, handle = asyncio.run(scenario())
        assert handle.released
        assert stream.stopped
        assert events == ["decoder.stop", "stream.stop"]
