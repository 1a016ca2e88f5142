"""Prometheus remote read protocol buffer messages.

Message classes for the subset of the Prometheus ``prompb`` package
(``types.proto`` and ``remote.proto``) used by remote read. The file
descriptor is assembled with ``descriptor_pb2`` and registered in a private
pool, so the classes do not clash with other copies of ``prometheus.*``
messages loaded in the same process.

Wire-compatible with:

    message Sample { double value = 1; int64 timestamp = 2; }
    message Label { string name = 1; string value = 2; }
    message LabelMatcher {
        enum Type { EQ = 0; NEQ = 1; RE = 2; NRE = 3; }
        Type type = 1; string name = 2; string value = 3;
    }
    message ReadHints { ... }
    message TimeSeries { repeated Label labels = 1; repeated Sample samples = 2; }
    message Query {
        int64 start_timestamp_ms = 1; int64 end_timestamp_ms = 2;
        repeated LabelMatcher matchers = 3; ReadHints hints = 4;
    }
    message QueryResult { repeated TimeSeries timeseries = 1; }
    message ReadRequest {
        enum ResponseType { SAMPLES = 0; STREAMED_XOR_CHUNKS = 1; }
        repeated Query queries = 1;
        repeated ResponseType accepted_response_types = 2;
    }
    message ReadResponse { repeated QueryResult results = 1; }
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_FDP = descriptor_pb2.FieldDescriptorProto

_PACKAGE = "prometheus"


def _field(
    name: str,
    number: int,
    field_type: int,
    repeated: bool = False,
    type_name: str | None = None,
) -> _FDP:
    field = _FDP(
        name=name,
        number=number,
        type=field_type,
        label=_FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = f".{_PACKAGE}.{type_name}"
    return field


def _message(name: str, *fields: _FDP) -> descriptor_pb2.DescriptorProto:
    message = descriptor_pb2.DescriptorProto(name=name)
    message.field.extend(fields)
    return message


def _enum(name: str, *values: str) -> descriptor_pb2.EnumDescriptorProto:
    enum = descriptor_pb2.EnumDescriptorProto(name=name)
    for number, value in enumerate(values):
        enum.value.add(name=value, number=number)
    return enum


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    sample = _message(
        "Sample",
        _field("value", 1, _FDP.TYPE_DOUBLE),
        _field("timestamp", 2, _FDP.TYPE_INT64),
    )
    label = _message(
        "Label",
        _field("name", 1, _FDP.TYPE_STRING),
        _field("value", 2, _FDP.TYPE_STRING),
    )
    label_matcher = _message(
        "LabelMatcher",
        _field("type", 1, _FDP.TYPE_ENUM, type_name="LabelMatcher.Type"),
        _field("name", 2, _FDP.TYPE_STRING),
        _field("value", 3, _FDP.TYPE_STRING),
    )
    label_matcher.enum_type.append(_enum("Type", "EQ", "NEQ", "RE", "NRE"))
    read_hints = _message(
        "ReadHints",
        _field("step_ms", 1, _FDP.TYPE_INT64),
        _field("func", 2, _FDP.TYPE_STRING),
        _field("start_ms", 3, _FDP.TYPE_INT64),
        _field("end_ms", 4, _FDP.TYPE_INT64),
        _field("grouping", 5, _FDP.TYPE_STRING, repeated=True),
        _field("by", 6, _FDP.TYPE_BOOL),
        _field("range_ms", 7, _FDP.TYPE_INT64),
    )
    time_series = _message(
        "TimeSeries",
        _field("labels", 1, _FDP.TYPE_MESSAGE, repeated=True, type_name="Label"),
        _field("samples", 2, _FDP.TYPE_MESSAGE, repeated=True, type_name="Sample"),
    )
    query = _message(
        "Query",
        _field("start_timestamp_ms", 1, _FDP.TYPE_INT64),
        _field("end_timestamp_ms", 2, _FDP.TYPE_INT64),
        _field(
            "matchers", 3, _FDP.TYPE_MESSAGE, repeated=True, type_name="LabelMatcher"
        ),
        _field("hints", 4, _FDP.TYPE_MESSAGE, type_name="ReadHints"),
    )
    query_result = _message(
        "QueryResult",
        _field(
            "timeseries", 1, _FDP.TYPE_MESSAGE, repeated=True, type_name="TimeSeries"
        ),
    )
    read_request = _message(
        "ReadRequest",
        _field("queries", 1, _FDP.TYPE_MESSAGE, repeated=True, type_name="Query"),
        _field(
            "accepted_response_types",
            2,
            _FDP.TYPE_ENUM,
            repeated=True,
            type_name="ReadRequest.ResponseType",
        ),
    )
    read_request.enum_type.append(
        _enum("ResponseType", "SAMPLES", "STREAMED_XOR_CHUNKS")
    )
    read_response = _message(
        "ReadResponse",
        _field(
            "results", 1, _FDP.TYPE_MESSAGE, repeated=True, type_name="QueryResult"
        ),
    )

    file_proto = descriptor_pb2.FileDescriptorProto(
        name="promreader/prompb.proto",
        package=_PACKAGE,
        syntax="proto3",
    )
    file_proto.message_type.extend(
        [
            sample,
            label,
            label_matcher,
            read_hints,
            time_series,
            query,
            query_result,
            read_request,
            read_response,
        ]
    )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
DESCRIPTOR = _pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(
        _pool.FindMessageTypeByName(f"{_PACKAGE}.{name}")
    )


Sample = _message_class("Sample")
Label = _message_class("Label")
LabelMatcher = _message_class("LabelMatcher")
ReadHints = _message_class("ReadHints")
TimeSeries = _message_class("TimeSeries")
Query = _message_class("Query")
QueryResult = _message_class("QueryResult")
ReadRequest = _message_class("ReadRequest")
ReadResponse = _message_class("ReadResponse")

__all__ = [
    "DESCRIPTOR",
    "Label",
    "LabelMatcher",
    "Query",
    "QueryResult",
    "ReadHints",
    "ReadRequest",
    "ReadResponse",
    "Sample",
    "TimeSeries",
]
