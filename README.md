# nrschub

Building blocks for a hub node on a DAG-based ledger network. The package is
a library; it has no command of its own.

- `nrschub.spec`: the unit data model (`Unit`, `Author`, `Message`,
  `Payment`, `Input`, `Output`, `SpendProof`, `HeaderCommissionShare`) with
  `from_dict` / `to_dict` conversion, `Unit.from_json`, `parse_payload` and
  `payload_to_value`, and `Definition.from_value` for address definitions.
  Malformed documents raise `SpecError`.
- `nrschub.signature`: secp256k1 signing and verification of 32-byte hashes.
  Signatures (64-byte compact form) and public keys are base64 strings.
  `Signer` is an abstract base for objects that sign on behalf of an address.
- `nrschub.statistics`: per-peer message counters rolled up by second,
  minute, hour and day, and finalized-joint TPS tracking.
- `nrschub.network.base`: the JSON-over-websocket message protocol
  (`justsaying`, `request`, `response`) with `Handler`, `WsConnection`,
  `WsServer` and `connect`.
- `nrschub.utils`: concurrency helpers in `atomic_lock`, `map_lock`,
  `fifo_cache`, `once`, `once_option`, `append_list`, `append_list_ext`,
  `wait` and `event`.
- `nrschub.clock.now()`: milliseconds since the Unix epoch.

## Installation

```
pip install nrschub
```

For running the test suite:

```
pip install "nrschub[test]"
pytest
```

## Units

```python
from nrschub.spec import Unit, Payment

unit = Unit.from_json(text)
print(unit.is_genesis_unit())          # True when the unit has no parents
for message in unit.messages:
    if isinstance(message.payload, Payment):
        print([(o.address, o.amount) for o in message.payload.outputs])
print(unit.to_dict())
```

A payload is kept as a string for text, as a `Payment` when it has the shape
of one, and as the raw value otherwise.

## Signatures

`sign(hash_bytes, priv_key)` takes a 32-byte hash and a 32-byte secret key
and returns a base64 signature. `verify(hash_bytes, b64_sig, b64_pub_key)`
returns nothing on success and raises `SignatureError` when an input is
malformed or the signature does not match. Public keys may be compressed
(33 bytes) or uncompressed (65 bytes).

## Statistics

```python
from nrschub import statistics

statistics.set_peer_addr_resolver(lambda peer_id: "10.0.0.1:6655")
statistics.increase_stats("peer-1", is_rx=True, is_good=True)
statistics.final_joints_increase()
statistics.update_stats()              # call once per second from your timer
print(statistics.get_all_last_stats()["peer-1"].to_dict())
print(statistics.get_tps_info().to_dict())
```

`Stats` and `FinalizeJointStats` can also be used directly; their methods
take an optional `now_ms` so they can be driven with a fixed clock. On a
day boundary, peers that saw no traffic during the past day are dropped.

## Network

Subclass `Handler` and override `on_message`, `on_request` and `on_close`;
the defaults reject every subject and command.

```python
from nrschub.network.base import Handler, WsServer, connect

class Echo(Handler):
    def on_request(self, conn, command, params):
        return params

server = WsServer(0, Echo(), host="127.0.0.1")
server.start()
conn = connect(f"ws://127.0.0.1:{server.port}", Handler())
print(conn.send_request("echo", {"x": 1}))
conn.close()
server.stop()
```

`send_request` blocks until the matching response arrives. It raises
`RequestError` for an error response, `TimeoutError` when no answer comes
within `request_timeout` seconds, and `ConnectionError` when the connection
closes while waiting. A handler's exception is sent back as an error
response.

## Utilities

- `AtomicLock.try_lock()` returns a guard or `None`; it never blocks.
- `MapLock` locks sets of keys: `try_lock(keys)` returns a guard or `None`,
  `lock(keys)` blocks until every key is free, waiters are woken in queue
  order, and `waiter_count()` reports how many are blocked.

  ```python
  from nrschub.utils.map_lock import MapLock

  in_work = MapLock()
  guard = in_work.try_lock(["unit-hash"])
  if guard is not None:
      with guard:
          ...  # handle the unit
  ```

- `FifoCache(capacity)` holds at most `capacity` entries. When it is full,
  `insert` first drops the most recently added entry.
- `Once` is set by the first `call_once(func)`; `get(timeout)` waits for the
  value and raises `TimeoutError` if it does not come. `OnceOption.set`
  stores a value the first time and hands it back on later calls.
- `AppendList` and `AppendListExt` are append-only linked lists;
  `AppendListExt.remove_with(predicate)` clears the first matching item.
- `wait_cond(predicate, timeout, interval)` polls until the predicate holds,
  raising `TimeoutError` after `timeout` seconds.
- Subclasses of `Event` each have their own handlers, registered with
  `add_handler`; `trigger()` or `emit_event(event)` runs them in a
  background thread and returns that thread.

## What this package does not do

It does not run a hub. There is no command, no joint storage or cache, no
validation, unit hashing or catch-up, no peer discovery or automatic
outbound connections, and no notifications to watching clients. It supplies
the data model, signatures, statistics, transport and helpers that such a
node would be built from.