"""Binary Module Loader — compile and instantiate WebAssembly with wasmtime.

WHY
───
The binary-module strategy must hand its companion fragment a live module
instance.  ``BinaryModuleLoader.load`` compiles, instantiates and publishes
the instance to the :class:`ExecutionContext` before it returns, so the
companion can use it immediately without any extra synchronisation.

ARCHITECTURE
────────────
::

    load(payload, context)
      ├── compile(payload)     ─ WAT → binary, wasmtime.Module   (suspends)
      │     └─ CompilationFailure
      ├── instantiate(module)  ─ wasmtime.Store + Instance        (suspends)
      │     └─ InstantiationFailure
      └── context.publish(instance)  ─ before returning

Payloads are binary modules (``\\0asm`` magic) or WAT text, as ``bytes``
or ``str``.  Modules that declare imports cannot be linked: the loader
provides none.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import wasmtime

from glyphrun.core.errors import CompilationFailure, InstantiationFailure
from glyphrun.core.logging import get_logger
from glyphrun.execution.context import MODULE_NAME, ExecutionContext

logger = get_logger(__name__)

WASM_MAGIC = b"\x00asm"


class ModuleInstance:
    """A live, callable wasmtime instance bound to its store."""

    def __init__(self, store: wasmtime.Store, module: wasmtime.Module, instance: wasmtime.Instance):
        self.store = store
        self.module = module
        self.instance = instance

    @property
    def exports(self) -> list[str]:
        return [export.name for export in self.module.exports]

    @property
    def function_names(self) -> list[str]:
        return [
            export.name
            for export in self.module.exports
            if isinstance(export.type, wasmtime.FuncType)
        ]

    def get(self, name: str) -> Any:
        """Exported function as a plain callable; exported global as its value."""
        try:
            item = self.instance.exports(self.store)[name]
        except KeyError:
            raise KeyError(f"module has no export '{name}'") from None
        if isinstance(item, wasmtime.Func):
            return self._bind(item)
        if isinstance(item, wasmtime.Global):
            return item.value(self.store)
        return item

    def call(self, name: str, *args: Any) -> Any:
        return self.get(name)(*args)

    def functions(self) -> dict[str, Callable[..., Any]]:
        return {name: self.get(name) for name in self.function_names}

    def _bind(self, func: wasmtime.Func) -> Callable[..., Any]:
        store = self.store

        def call(*args: Any) -> Any:
            return func(store, *args)

        return call

    def __repr__(self) -> str:
        return f"ModuleInstance(exports={self.exports})"


class BinaryModuleLoader:
    """Compile, instantiate and publish binary modules.

    One engine is shared by every module the loader compiles; each instance
    gets its own store.
    """

    def __init__(self, engine: wasmtime.Engine | None = None) -> None:
        self.engine = engine or wasmtime.Engine()

    @staticmethod
    def to_binary(payload: bytes | bytearray | str) -> bytes:
        """Normalise a payload to binary wasm, assembling WAT text if needed."""
        if isinstance(payload, (bytes, bytearray)):
            if bytes(payload[:4]) == WASM_MAGIC:
                return bytes(payload)
            try:
                payload = bytes(payload).decode("utf-8")
            except UnicodeDecodeError as e:
                raise CompilationFailure(
                    "Binary module compilation failed: payload is neither wasm nor WAT text",
                    cause=e,
                ) from e
        try:
            return bytes(wasmtime.wat2wasm(payload))
        except wasmtime.WasmtimeError as e:
            raise CompilationFailure(f"Binary module compilation failed: {e}", cause=e) from e

    async def compile(self, payload: bytes | bytearray | str) -> wasmtime.Module:
        binary = self.to_binary(payload)
        try:
            return await asyncio.to_thread(wasmtime.Module, self.engine, binary)
        except (wasmtime.WasmtimeError, ValueError, TypeError) as e:
            raise CompilationFailure(f"Binary module compilation failed: {e}", cause=e) from e

    async def instantiate(self, module: wasmtime.Module) -> ModuleInstance:
        store = wasmtime.Store(self.engine)
        try:
            instance = await asyncio.to_thread(wasmtime.Instance, store, module, [])
        except (wasmtime.WasmtimeError, wasmtime.Trap) as e:
            raise InstantiationFailure(f"Binary module instantiation failed: {e}", cause=e) from e
        return ModuleInstance(store, module, instance)

    async def load(
        self,
        payload: bytes | bytearray | str,
        context: ExecutionContext,
        name: str = MODULE_NAME,
    ) -> ModuleInstance:
        module = await self.compile(payload)
        instance = await self.instantiate(module)
        context.publish(instance, name=name)
        logger.info("loader.published", name=name, exports=instance.exports)
        return instance
