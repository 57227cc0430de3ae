r"""
Pennant value adapters.

Overview
- Value contract
  • str(value) serializes the current value to text.
  • value.set(text) parses text into the value, raising ValueError on bad input.
- Optional capabilities (resolved once per flag, see capabilities())
  • GETTER   → get() returns the typed value.
  • BOOLEAN  → the flag can be given without a value ('--verbose', '--no-verbose').
  • OPTIONAL → the value may be omitted entirely; set("") is called instead.
  • SLICE    → append(text), replace(texts) and get_slice() for multi-valued flags.
  • TYPED    → type() returns a type name used in usage text and typed getters.

- Adapters
  • BoolValue, CountValue, StringValue
  • IntValue (int), Int8Value .. Int64Value, UintValue, Uint8Value .. Uint64Value
  • Float32Value, Float64Value, DurationValue
  • StringSliceValue, IntSliceValue, Float64SliceValue, BoolSliceValue, DurationSliceValue
  • StringToStringValue, StringToIntValue

Text forms
- Integers accept a sign, base prefixes (0x, 0o, 0b), leading-zero octal and underscores.
- Booleans accept exactly 1 0 t f T F true false TRUE FALSE True False.
- Durations are sequences of decimal numbers with units: ns us µs ms s m h ('1h30m', '-1.5s').
- Slices are comma separated (strings honour CSV quoting) and serialize as '[a,b]'.
- Maps are comma separated key=value pairs and serialize as '[k=v,k2=v2]'.

Quick example:
    >>> value = IntValue(7)
    >>> value.set("0x10")
    >>> value.get(), str(value)
    (16, '16')
"""
import csv
import io
import math
import re
import struct
from abc import ABC, abstractmethod
from datetime import timedelta
from enum import Flag, auto
from fractions import Fraction

from .utils import Unset, coalesce


class Capability(Flag):
    """
    optional behaviours a value adapter may provide on top of the Value contract.
    """
    NONE = 0
    GETTER = auto()
    BOOLEAN = auto()
    OPTIONAL = auto()
    SLICE = auto()
    TYPED = auto()


_BOOLEANS = {
    "1": True, "t": True, "T": True, "true": True, "TRUE": True, "True": True,
    "0": False, "f": False, "F": False, "false": False, "FALSE": False, "False": False,
}


def parse_bool(text, /):
    """
    Parse the conventional boolean literals; anything else raises ValueError.
    """
    try:
        return _BOOLEANS[text]
    except KeyError:
        raise ValueError("invalid syntax: %r is not a boolean" % text) from None


def is_bool(text, /):
    """
    Report whether text is one of the accepted boolean literals.
    """
    return text in _BOOLEANS


def parse_int(text, /, *, bits=64, signed=True):
    """
    Parse an integer literal the way C-family command lines spell them.

    Accepted forms
    - optional sign, then decimal digits ("42", "-7")
    - base prefixes "0x"/"0X", "0o"/"0O", "0b"/"0B"
    - leading-zero octal ("0755")
    - underscores between digits ("1_000")

    Raises
    - ValueError for malformed text or a value outside the range of the given
      bit size and signedness.
    """
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]

    lowered = body.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        base = {"x": 16, "o": 8, "b": 2}[lowered[1]]
        digits = body[2:]
    elif len(body) > 1 and body[0] == "0":
        base = 8
        digits = body[1:]
    else:
        base = 10
        digits = body

    if not re.fullmatch(r"[0-9A-Za-z]+(_[0-9A-Za-z]+)*", digits):
        raise ValueError("invalid syntax: %r is not an integer" % text)
    try:
        number = int(digits, base)
    except ValueError:
        raise ValueError("invalid syntax: %r is not an integer" % text) from None
    if negative:
        number = -number

    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= number <= high:
        raise ValueError("value out of range: %r" % text)
    return number


# smallest magnitude that rounds to infinity as a float32
_FLOAT32_LIMIT = 2.0 ** 128 - 2.0 ** 103
_INFINITY = re.compile(r"[+-]?inf(inity)?", re.IGNORECASE)


def _round32(number, /):
    if math.isfinite(number) and abs(number) >= _FLOAT32_LIMIT:
        raise ValueError("value out of range: %r" % number)
    return struct.unpack("f", struct.pack("f", number))[0]


def _format_float(number, /, bits=64):
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if math.isnan(number):
        return "NaN"
    if bits == 32:
        # shortest text that rounds back to the same float32
        for precision in range(1, 10):
            text = "%.*g" % (precision, number)
            if abs(float(text)) < _FLOAT32_LIMIT and _round32(float(text)) == number:
                return text
        return "%.9g" % number
    text = repr(number)
    return text[:-2] if text.endswith(".0") else text


_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}


def parse_duration(text, /):
    """
    Parse a duration such as "300ms", "-1.5h" or "2h45m" into a timedelta.

    Notes
    - "0" is accepted without a unit; every other component needs one.
    - Resolution below a microsecond is truncated.
    """
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body or not re.fullmatch(r"(\d*\.?\d*[^\d.]+)+", body):
        raise ValueError("invalid duration %r" % text)

    nanoseconds = Fraction(0)
    for number, unit in re.findall(r"(\d*\.?\d*)([^\d.]+)", body):
        if not re.fullmatch(r"\d+\.?\d*|\.\d+", number):
            raise ValueError("invalid duration %r" % text)
        try:
            nanoseconds += Fraction(number) * _DURATION_UNITS[unit]
        except KeyError:
            raise ValueError("unknown unit %r in duration %r" % (unit, text)) from None

    microseconds = int(nanoseconds / 1000)
    try:
        return timedelta(microseconds=-microseconds if negative else microseconds)
    except OverflowError:
        raise ValueError("invalid duration %r: out of range" % text) from None


def _fraction(value, size, /):
    whole, rest = divmod(value, size)
    if not rest:
        return str(whole)
    return "%d.%s" % (whole, str(rest).rjust(len(str(size)) - 1, "0").rstrip("0"))


def format_duration(delta, /):
    """
    Serialize a timedelta the way Go prints durations ("1h30m0s", "1.5s", "250ms").
    """
    nanoseconds = ((delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds) * 1000
    if not nanoseconds:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    nanoseconds = abs(nanoseconds)

    if nanoseconds < 1_000_000_000:
        if nanoseconds < 1_000:
            return sign + _fraction(nanoseconds, 1) + "ns"
        if nanoseconds < 1_000_000:
            return sign + _fraction(nanoseconds, 1_000) + "µs"
        return sign + _fraction(nanoseconds, 1_000_000) + "ms"

    hours, rest = divmod(nanoseconds, _DURATION_UNITS["h"])
    minutes, rest = divmod(rest, _DURATION_UNITS["m"])
    text = _fraction(rest, _DURATION_UNITS["s"]) + "s"
    if hours or minutes:
        text = str(minutes) + "m" + text
    if hours:
        text = str(hours) + "h" + text
    return sign + text


def _split_csv(text, /):
    try:
        rows = list(csv.reader([text], strict=True))
    except csv.Error as error:
        raise ValueError("malformed list %r: %s" % (text, error)) from None
    return rows[0] if rows else []


def _join_csv(items, /):
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="").writerow(items)
    return buffer.getvalue()


class Value(ABC):
    """
    Base class of the built-in adapters.

    Subclasses declare
    - __typename__: name reported by type() (e.g. "int8", "stringSlice").
    - __capabilities__: the Capability set they implement.

    Objects that do not derive from Value can still be used as flag values as
    long as they provide set(text) and __str__; their capabilities are probed
    once by capabilities().
    """
    __typename__ = "value"
    __capabilities__ = Capability.TYPED

    @abstractmethod
    def set(self, text, /):
        raise NotImplementedError

    @abstractmethod
    def __str__(self):
        raise NotImplementedError

    def type(self):
        return type(self).__typename__

    def is_bool_flag(self):
        return Capability.BOOLEAN in type(self).__capabilities__

    def is_optional(self):
        return Capability.OPTIONAL in type(self).__capabilities__

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, str(self))


def capabilities(value, /):
    """
    Resolve the Capability set of a value adapter.

    - Value subclasses report their declared __capabilities__.
    - Other objects are probed for get(), is_bool_flag(), is_optional(),
      append()/replace()/get_slice() and type().

    Raises
    - TypeError when the object does not provide set(text).
    """
    if isinstance(value, Value):
        return type(value).__capabilities__

    if not callable(getattr(value, "set", None)):
        raise TypeError("flag value must provide a set(text) method")

    result = Capability.NONE
    if callable(getattr(value, "get", None)):
        result |= Capability.GETTER
    if callable(probe := getattr(value, "is_bool_flag", None)) and probe():
        result |= Capability.BOOLEAN
    if callable(probe := getattr(value, "is_optional", None)) and probe():
        result |= Capability.OPTIONAL
    if all(callable(getattr(value, name, None)) for name in ("append", "replace", "get_slice")):
        result |= Capability.SLICE
    if callable(getattr(value, "type", None)):
        result |= Capability.TYPED
    return result


class BoolValue(Value):
    """
    Boolean flag value. An empty text (flag given without value) means true.
    """
    __typename__ = "bool"
    __capabilities__ = Capability.GETTER | Capability.BOOLEAN | Capability.TYPED

    def __init__(self, default=False, /):
        self.value = bool(default)

    def set(self, text, /):
        self.value = True if text == "" else parse_bool(text)

    def get(self):
        return self.value

    def __str__(self):
        return "true" if self.value else "false"


class IntValue(Value):
    __typename__ = "int"
    __capabilities__ = Capability.GETTER | Capability.TYPED
    __bits__ = 64
    __signed__ = True

    def __init__(self, default=0, /):
        self.value = parse_int(str(int(default)), bits=type(self).__bits__, signed=type(self).__signed__)

    def set(self, text, /):
        self.value = parse_int(text.strip(), bits=type(self).__bits__, signed=type(self).__signed__)

    def get(self):
        return self.value

    def __str__(self):
        return str(self.value)


class Int8Value(IntValue):
    __typename__ = "int8"
    __bits__ = 8


class Int16Value(IntValue):
    __typename__ = "int16"
    __bits__ = 16


class Int32Value(IntValue):
    __typename__ = "int32"
    __bits__ = 32


class Int64Value(IntValue):
    __typename__ = "int64"


class UintValue(IntValue):
    __typename__ = "uint"
    __signed__ = False


class Uint8Value(UintValue):
    __typename__ = "uint8"
    __bits__ = 8


class Uint16Value(UintValue):
    __typename__ = "uint16"
    __bits__ = 16


class Uint32Value(UintValue):
    __typename__ = "uint32"
    __bits__ = 32


class Uint64Value(UintValue):
    __typename__ = "uint64"


class CountValue(Value):
    """
    Counter: every bare occurrence ('-v', '-vvv', '--verbose') adds one;
    an explicit value ('--verbose=3') replaces the count.
    """
    __typename__ = "count"
    __capabilities__ = Capability.GETTER | Capability.OPTIONAL | Capability.TYPED

    def __init__(self, default=0, /):
        self.value = int(default)

    def set(self, text, /):
        if text == "":
            self.value += 1
            return
        self.value = parse_int(text.strip())

    def get(self):
        return self.value

    def __str__(self):
        return str(self.value)


class Float64Value(Value):
    __typename__ = "float64"
    __capabilities__ = Capability.GETTER | Capability.TYPED
    __bits__ = 64

    def __init__(self, default=0.0, /):
        self.value = self._convert(float(default))

    def _convert(self, number, /):
        return _round32(number) if type(self).__bits__ == 32 else number

    def set(self, text, /):
        try:
            number = float(text.strip())
        except ValueError:
            raise ValueError("invalid syntax: %r is not a float" % text) from None
        if math.isinf(number) and not _INFINITY.fullmatch(text.strip()):
            raise ValueError("value out of range: %r" % text)
        self.value = self._convert(number)

    def get(self):
        return self.value

    def __str__(self):
        return _format_float(self.value, type(self).__bits__)


class Float32Value(Float64Value):
    __typename__ = "float32"
    __bits__ = 32


class StringValue(Value):
    __typename__ = "string"
    __capabilities__ = Capability.GETTER | Capability.TYPED

    def __init__(self, default="", /):
        self.value = str(default)

    def set(self, text, /):
        self.value = text

    def get(self):
        return self.value

    def __str__(self):
        return self.value


class DurationValue(Value):
    __typename__ = "duration"
    __capabilities__ = Capability.GETTER | Capability.TYPED

    def __init__(self, default=timedelta(0), /):
        if not isinstance(default, timedelta):
            raise TypeError("duration default must be a timedelta")
        self.value = default

    def set(self, text, /):
        self.value = parse_duration(text.strip())

    def get(self):
        return self.value

    def __str__(self):
        return format_duration(self.value)


class SliceValue(Value):
    """
    Multi-valued flag. The first set() replaces the default, later ones append.

    Subclasses choose the element adapter through __element__; each element is
    parsed and formatted by a fresh instance of it.
    """
    __typename__ = "slice"
    __capabilities__ = Capability.GETTER | Capability.SLICE | Capability.TYPED
    __element__ = StringValue

    def __init__(self, default=(), /):
        self.value = [self._convert(item) for item in default]
        self.changed = False

    def _convert(self, item, /):
        return type(self).__element__(item).get()

    def _parse(self, text, /):
        element = type(self).__element__()
        element.set(text)
        return element.get()

    def _format(self, item, /):
        return str(type(self).__element__(item))

    def _split(self, text, /):
        return text.split(",")

    def set(self, text, /):
        items = [self._parse(part) for part in self._split(text)]
        if self.changed:
            self.value.extend(items)
        else:
            self.value = items
            self.changed = True

    def append(self, text, /):
        self.value.append(self._parse(text))

    def replace(self, texts, /):
        self.value = [self._parse(text) for text in texts]

    def get_slice(self):
        return [self._format(item) for item in self.value]

    def get(self):
        return list(self.value)

    def __str__(self):
        return "[" + ",".join(self.get_slice()) + "]"


class StringSliceValue(SliceValue):
    __typename__ = "stringSlice"
    __element__ = StringValue

    def _split(self, text, /):
        return _split_csv(text)

    def __str__(self):
        return "[" + _join_csv(self.get_slice()) + "]"


class IntSliceValue(SliceValue):
    __typename__ = "intSlice"
    __element__ = IntValue


class Float64SliceValue(SliceValue):
    __typename__ = "float64Slice"
    __element__ = Float64Value


class BoolSliceValue(SliceValue):
    __typename__ = "boolSlice"
    __element__ = BoolValue

    def _parse(self, text, /):
        return parse_bool(text.strip())


class DurationSliceValue(SliceValue):
    __typename__ = "durationSlice"
    __element__ = DurationValue


class MapValue(Value):
    """
    key=value pairs. The first set() replaces the default, later ones merge.
    """
    __typename__ = "map"
    __capabilities__ = Capability.GETTER | Capability.TYPED
    __element__ = StringValue

    def __init__(self, default=Unset, /):
        self.value = {str(key): self._convert(item) for key, item in coalesce(default, {}).items()}
        self.changed = False

    _convert = SliceValue._convert
    _parse = SliceValue._parse
    _format = SliceValue._format

    def _split(self, text, /):
        return _split_csv(text)

    def set(self, text, /):
        items = {}
        for pair in self._split(text):
            key, separator, raw = pair.partition("=")
            if not separator:
                raise ValueError("%r must be formatted as key=value" % pair)
            items[key] = self._parse(raw)
        if self.changed:
            self.value.update(items)
        else:
            self.value = items
            self.changed = True

    def get(self):
        return dict(self.value)

    def __str__(self):
        return "[" + ",".join("%s=%s" % (key, self._format(item)) for key, item in self.value.items()) + "]"


class StringToStringValue(MapValue):
    __typename__ = "stringToString"
    __element__ = StringValue

    def __str__(self):
        return "[" + _join_csv("%s=%s" % pair for pair in self.value.items()) + "]"


class StringToIntValue(MapValue):
    __typename__ = "stringToInt"
    __element__ = IntValue

    def _split(self, text, /):
        return text.split(",")


__all__ = (
    # Capabilities
    "Capability",
    "capabilities",

    # Helpers
    "parse_bool",
    "is_bool",
    "parse_int",
    "parse_duration",
    "format_duration",

    # Contract
    "Value",

    # Scalars
    "BoolValue",
    "IntValue",
    "Int8Value",
    "Int16Value",
    "Int32Value",
    "Int64Value",
    "UintValue",
    "Uint8Value",
    "Uint16Value",
    "Uint32Value",
    "Uint64Value",
    "CountValue",
    "Float32Value",
    "Float64Value",
    "StringValue",
    "DurationValue",

    # Collections
    "SliceValue",
    "StringSliceValue",
    "IntSliceValue",
    "Float64SliceValue",
    "BoolSliceValue",
    "DurationSliceValue",
    "MapValue",
    "StringToStringValue",
    "StringToIntValue",
)
