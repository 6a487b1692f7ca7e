"""Tests for the request/reply master."""

import pytest

from conftest import FakeStream, with_crc
from modbus_rtu.client import ModbusRtuMaster, TransactionState
from modbus_rtu.exceptions import (
    ChecksumMismatch, ConnectionError, DeviceException, EchoMismatch,
    ErrorKind, FrameCorruption, ModbusError, ParameterError, TransportTimeout
)
from modbus_rtu.frame import FrameBuilder


def make_master(*replies):
    stream = FakeStream(list(replies))
    master = ModbusRtuMaster(stream)
    master.connect()
    return master, stream


def test_read_holding_registers():
    master, stream = make_master(with_crc("010304000A0014"))
    assert master.read_holding_registers(1, 0x0000, 2) == [10, 20]
    assert stream.written == [bytes.fromhex("010300000002C40B")]
    assert master.state is TransactionState.IDLE


def test_read_input_registers():
    master, _ = make_master(with_crc("0204041234ABCD"))
    assert master.read_input_registers(2, 0x0008, 2) == [0x1234, 0xABCD]


def test_read_coils_and_discrete_inputs():
    master, stream = make_master(with_crc("010102CD01"), with_crc("01020105"))
    assert master.read_coils(1, 0x0013, 10) == [True, False, True, True, False, False, True, True, True, False]
    assert master.read_discrete_inputs(1, 0, 3) == [True, False, True]
    assert stream.written[1] == FrameBuilder.build_read_discrete_inputs(1, 0, 3)


def test_writes_succeed_on_faithful_echo():
    master, stream = make_master(
        with_crc("01050001FF00"),
        with_crc("010600020123"),
        with_crc("010F0013000A"),
        with_crc("011000010002"),
    )
    assert master.write_single_coil(1, 0x0001, True) is None
    assert master.write_single_register(1, 0x0002, 0x0123) is None
    assert master.write_multiple_coils(1, 0x0013, [True, False] * 5) is None
    assert master.write_multiple_registers(1, 0x0001, [0x000A, 0x0102]) is None
    assert len(stream.written) == 4
    assert stream.written[0][:6] == bytes.fromhex("01050001FF00")


def test_write_single_coil_echo_mismatch_never_succeeds():
    master, _ = make_master(with_crc("010500010000"))
    with pytest.raises(EchoMismatch):
        master.write_single_coil(1, 0x0001, True)


def test_buffers_discarded_before_send():
    master, stream = make_master(with_crc("010304000A0014"))
    stream.rx.extend(b"\xde\xad")  # stale reply from an earlier transaction
    assert master.read_holding_registers(1, 0, 2) == [10, 20]
    assert stream.calls[-3:] == ["discard_input", "discard_output", "write"]


def test_no_response_times_out():
    master, stream = make_master()
    with pytest.raises(TransportTimeout) as exc:
        master.read_holding_registers(1, 0, 2)
    assert exc.value.kind is ErrorKind.TRANSPORT_TIMEOUT
    assert exc.value.timeout == stream.timeout
    assert master.state is TransactionState.IDLE


def test_timeout_override():
    stream = FakeStream(timeout=1.0)
    master = ModbusRtuMaster(stream, timeout=0.25)
    assert stream.timeout == 0.25
    master.timeout = 0.5
    assert master.timeout == 0.5


def test_device_exception_propagates():
    master, _ = make_master(with_crc("018302"))
    with pytest.raises(DeviceException) as exc:
        master.read_holding_registers(1, 0x1000, 2)
    assert exc.value.code == 0x02


def test_device_exception_naming_other_function():
    master, _ = make_master(with_crc("018102"))
    with pytest.raises(DeviceException) as exc:
        master.read_holding_registers(1, 0, 2)
    assert exc.value.function == 0x01
    assert master.state is TransactionState.IDLE


def test_connection_reusable_after_failures():
    corrupt = bytearray(with_crc("010304000A0014"))
    corrupt[-1] ^= 0xFF
    master, _ = make_master(
        b"\x01\x03\x04\x00",
        bytes(corrupt),
        with_crc("018304"),
        None,
        with_crc("010304000A0014"),
    )
    with pytest.raises(FrameCorruption):
        master.read_holding_registers(1, 0, 2)
    with pytest.raises(ChecksumMismatch):
        master.read_holding_registers(1, 0, 2)
    with pytest.raises(DeviceException):
        master.read_holding_registers(1, 0, 2)
    with pytest.raises(TransportTimeout):
        master.read_holding_registers(1, 0, 2)
    assert master.read_holding_registers(1, 0, 2) == [10, 20]
    assert master.state is TransactionState.IDLE


@pytest.mark.parametrize("call", [
    lambda m: m.read_coils(1, 0, 2001),
    lambda m: m.read_discrete_inputs(1, 0, 2001),
    lambda m: m.read_holding_registers(1, 0, 126),
    lambda m: m.read_input_registers(1, 0, 126),
    lambda m: m.read_holding_registers(256, 0, 1),
    lambda m: m.read_holding_registers(-1, 0, 1),
    lambda m: m.read_holding_registers(1, 0x10000, 1),
    lambda m: m.write_single_register(1, 0, 0x10000),
    lambda m: m.write_single_coil(1, -1, True),
    lambda m: m.write_multiple_registers(1, 0, []),
    lambda m: m.write_multiple_registers(1, 0, [0] * 124),
    lambda m: m.write_multiple_registers(1, 0, [0, 70000]),
    lambda m: m.write_multiple_coils(1, 0, []),
    lambda m: m.write_multiple_coils(1, 0, [True] * 1969),
])
def test_parameter_errors_do_no_io(call):
    master, stream = make_master(with_crc("010304000A0014"))
    with pytest.raises(ParameterError) as exc:
        call(master)
    assert isinstance(exc.value, ValueError)
    assert isinstance(exc.value, ModbusError)
    assert exc.value.kind is ErrorKind.PARAMETER
    assert stream.written == []
    assert "discard_input" not in stream.calls


def test_limits_are_inclusive():
    master, stream = make_master(
        with_crc("01100000007B"),
        with_crc("010F000007B0"),
    )
    master.write_multiple_registers(1, 0, [0xFFFF] * 123)
    master.write_multiple_coils(1, 0, [True] * 1968)
    assert stream.written[1][6] == 246  # ceil(1968 / 8)


def test_quantity_zero_reads_return_empty():
    master, stream = make_master(with_crc("010300"), with_crc("010100"))
    assert master.read_holding_registers(1, 0, 0) == []
    assert master.read_coils(1, 0, 0) == []
    assert stream.written[0][:6] == bytes.fromhex("010300000000")


def test_read_at_top_of_address_space():
    """Addresses are not checked against start + quantity; the slave decides."""
    master, stream = make_master(with_crc("010304000A0014"))
    assert master.read_holding_registers(1, 0xFFFF, 2) == [10, 20]
    assert stream.written[0][:6] == bytes.fromhex("0103FFFF0002")


def test_operation_requires_connection():
    master = ModbusRtuMaster(FakeStream())
    with pytest.raises(ConnectionError):
        master.read_coils(1, 0, 1)


def test_context_manager_opens_and_closes():
    stream = FakeStream()
    with ModbusRtuMaster(stream) as master:
        assert master.is_connected
    assert not stream.is_open
    assert stream.calls == ["open", "close"]


def test_from_serial_builds_closed_transport():
    master = ModbusRtuMaster.from_serial("/dev/ttyUSB9", baudrate=19200, timeout=0.2, parity="E")
    assert master.transport.port == "/dev/ttyUSB9"
    assert master.transport.baudrate == 19200
    assert master.transport.parity == "E"
    assert master.timeout == 0.2
    assert not master.is_connected
