"""Patching of variables held by modules, classes, objects and containers.

A variable is reached through a `Ref`, a small handle which knows how to
read and write one storage cell owned by the caller.  `set_variable`
builds a `VariableSetter` from a `Ref`, an ``(owner, name)`` tuple, or a
dotted import path such as ``'mypackage.module.VARIABLE'``:

    >>> import types
    >>> from patchkit.setvar import set_variable
    >>> holder = types.SimpleNamespace(greeting='hello')
    >>> with set_variable((holder, 'greeting'), 'goodbye'):
    ...     print(holder.greeting)
    goodbye
    >>> holder.greeting
    'hello'
"""

import collections.abc
import importlib
import inspect
import logging
import types
from typing import (Annotated, Any, ClassVar, Final, Optional, get_args,
                    get_origin, get_type_hints, is_typeddict)

from pydantic import (BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter,
                      ValidationError, field_validator)
from pydantic.errors import PydanticUndefinedAnnotation, PydanticUserError

from patchkit.specs import (PatchContext, UnassignableValueError,
                            UnsettableVariableError, default_strict)

LOGGER = logging.getLogger(__name__)

IMMUTABLE_OWNERS = (bool, int, float, complex, str, bytes, tuple, frozenset,
                    type(None))

EXTRA_KEYWORD = '_patchkit_extra_keyword'

_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True, strict=True)

INHERITED = object()


class Ref:
    """Handle on a mutable storage cell owned by the caller.

    Sub-classes should override get, set and describe.  The handle
    never owns the cell; it only reads and writes it.
    """

    def get(self):
        "Return the value currently held by the cell."
        raise NotImplementedError

    def set(self, value):
        "Store value in the cell."
        raise NotImplementedError

    def snapshot(self):
        "Return what rollback needs to put the cell back as it is now."
        return self.get()

    def rollback(self, saved):
        "Put the cell back as it was when snapshot returned saved."
        self.set(saved)

    def declared_type(self):
        "Return the declared type of the cell or None if it has none."
        return None

    def describe(self) -> str:
        "Short human readable description of the cell."
        raise NotImplementedError

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.describe()}>'


class AttrRef(Ref):
    """Reference to attribute `name` of a module, class or instance.
    """

    def __init__(self, owner, name: str):
        if not isinstance(name, str):
            raise UnsettableVariableError(
                f'attribute name must be a string, got {name!r}')
        if not hasattr(owner, name):
            raise UnsettableVariableError(
                f'{owner!r} has no attribute {name!r} to set')
        if not is_writable_attribute(owner, name):
            raise UnsettableVariableError(
                f'attribute {name!r} of {owner!r} is read-only')
        self.owner = owner
        self.name = name

    def get(self):
        return getattr(self.owner, self.name)

    def set(self, value):
        setattr(self.owner, self.name, value)

    def snapshot(self):
        """Return the raw attribute, or INHERITED if the owner lacks one.

        Class attributes are saved as stored (a staticmethod stays a
        staticmethod); attributes found only on a base class or the
        owner's class are marked INHERITED so rollback deletes the copy
        left on the owner.  Attributes managed by a data descriptor
        (property with setter, slot) are saved through the descriptor.
        """
        descriptor = _class_attribute(type(self.owner), self.name)
        if descriptor is not None and hasattr(type(descriptor), '__set__'):
            return self.get()
        local = getattr(self.owner, '__dict__', None)
        if local is not None and self.name in local:
            return local[self.name]
        return INHERITED

    def rollback(self, saved):
        if saved is INHERITED:
            delattr(self.owner, self.name)
        else:
            setattr(self.owner, self.name, saved)

    def declared_type(self):
        if isinstance(self.owner, (type, types.ModuleType)):
            holder = self.owner
        else:
            holder = type(self.owner)
        try:
            hints = get_type_hints(holder)
        except (AttributeError, NameError, TypeError) as problem:
            LOGGER.debug('Ignoring unresolvable annotations of %r: %s',
                         holder, problem)
            return None
        return unwrap_hint(hints.get(self.name))

    def describe(self) -> str:
        owner_name = getattr(self.owner, '__name__', None)
        if not isinstance(owner_name, str):
            owner_name = f'{type(self.owner).__name__} object'
        return f'{owner_name}.{self.name}'


class ItemRef(Ref):
    """Reference to item `key` of a mutable mapping or sequence.
    """

    def __init__(self, container, key):
        if not isinstance(container, (collections.abc.MutableMapping,
                                      collections.abc.MutableSequence)):
            raise UnsettableVariableError(
                f'cannot set items of {type(container).__name__} object')
        try:
            container[key]
        except (IndexError, KeyError, TypeError) as problem:
            raise UnsettableVariableError(
                f'{key!r} is not present in '
                f'{type(container).__name__} object') from problem
        self.container = container
        self.key = key

    def get(self):
        return self.container[self.key]

    def set(self, value):
        self.container[self.key] = value

    def describe(self) -> str:
        return f'{type(self.container).__name__}[{self.key!r}]'


def _class_attribute(klass, name):
    for base in klass.__mro__:
        if name in vars(base):
            return vars(base)[name]
    return None


def is_writable_attribute(owner, name: str) -> bool:
    """Whether setattr(owner, name, ...) can be expected to work.
    """
    if isinstance(owner, IMMUTABLE_OWNERS):
        return False
    if isinstance(owner, type) and owner.__module__ == 'builtins':
        return False
    descriptor = _class_attribute(type(owner), name)
    if isinstance(descriptor, property):
        return descriptor.fset is not None
    if descriptor is not None and hasattr(type(descriptor), '__set__'):
        return True
    return hasattr(owner, '__dict__')


def import_object(path: str):
    """Import the object named by dotted `path`.

    Modules along the path are imported as needed, so
    ``'package.module.Class'`` works even if ``package`` does not
    import ``module`` itself.
    """
    components = path.split('.')
    import_path = components.pop(0)
    thing = importlib.import_module(import_path)
    for component in components:
        import_path += f'.{component}'
        try:
            thing = getattr(thing, component)
        except AttributeError:
            importlib.import_module(import_path)
            thing = getattr(thing, component)
    return thing


def resolve_target(target) -> Ref:
    """Turn something naming a variable into a Ref.

    Args:
        target: A Ref, an ``(owner, name)`` tuple or a dotted path
                ``'package.module.name'``.

    Raises:
        UnsettableVariableError: If target does not name a writable cell.
    """
    if isinstance(target, Ref):
        return target
    if isinstance(target, str):
        owner_path, _, name = target.rpartition('.')
        if not owner_path:
            raise UnsettableVariableError(
                f'{target!r} is not a dotted path to a variable')
        try:
            owner = import_object(owner_path)
        except (AttributeError, ImportError) as problem:
            raise UnsettableVariableError(
                f'cannot import {owner_path!r} to patch {target!r}'
            ) from problem
        return AttrRef(owner, name)
    if isinstance(target, tuple) and len(target) == 2:
        return AttrRef(*target)
    raise UnsettableVariableError(
        f'cannot set variable passed to set_variable: {target!r}')


def unwrap_hint(hint):
    "Strip ClassVar and Final from hint; bare qualifiers give None."
    if hint in (ClassVar, Final):
        return None
    if get_origin(hint) in (ClassVar, Final):
        args = get_args(hint)
        return args[0] if args else None
    return hint


def type_name(hint) -> str:
    if isinstance(hint, type) and get_origin(hint) is None:
        return hint.__name__
    return repr(hint)


def describe_value_type(value) -> str:
    "Name the type of value, with its signature for plain callables."
    if is_plain_callable(value):
        try:
            return f'callable{inspect.signature(value)}'
        except (TypeError, ValueError):
            return 'callable'
    return type(value).__name__


def is_plain_callable(value) -> bool:
    return callable(value) and not isinstance(value, type)


def matches_hint(hint, value) -> bool:
    """Whether value satisfies the declared type hint.

    Plain classes are checked with isinstance; other typing constructs
    are validated strictly with pydantic.  Hints pydantic cannot handle
    are accepted.
    """
    if hint is Any:
        return True
    if (isinstance(hint, type) and get_origin(hint) is None
            and not is_typeddict(hint)):
        return isinstance(value, hint)
    config = None if is_typeddict(hint) else _ADAPTER_CONFIG
    try:
        adapter = TypeAdapter(hint, config=config)
    except (PydanticUndefinedAnnotation, PydanticUserError) as problem:
        LOGGER.debug('Cannot validate against %r: %s', hint, problem)
        return True
    try:
        adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def call_shapes(sig: inspect.Signature):
    """Return (args, kwargs) pairs covering the ways sig can be called.

    The shapes are: only required arguments; every argument (plus one
    extra for ``*args`` and ``**kwargs``); and every argument which may
    be given by keyword given by keyword.
    """
    minimal_args, full_args, keyword_args = [], [], []
    minimal_kwargs, full_kwargs, keyword_kwargs = {}, {}, {}
    for param in sig.parameters.values():
        required = param.default is param.empty
        if param.kind is param.POSITIONAL_ONLY:
            full_args.append(param.name)
            if required:
                minimal_args.append(param.name)
                keyword_args.append(param.name)
        elif param.kind is param.POSITIONAL_OR_KEYWORD:
            full_args.append(param.name)
            keyword_kwargs[param.name] = param.name
            if required:
                minimal_args.append(param.name)
        elif param.kind is param.VAR_POSITIONAL:
            full_args.append(param.name)
        elif param.kind is param.KEYWORD_ONLY:
            full_kwargs[param.name] = param.name
            keyword_kwargs[param.name] = param.name
            if required:
                minimal_kwargs[param.name] = param.name
        else:
            full_kwargs[EXTRA_KEYWORD] = EXTRA_KEYWORD
    return [(minimal_args, minimal_kwargs), (full_args, full_kwargs),
            (keyword_args, keyword_kwargs)]


def signatures_compatible(original, replacement) -> bool:
    """Whether replacement can be called every way original can.

    Return annotations are compared only when both are classes; the
    replacement must then return the same class or a subclass.
    """
    try:
        old_sig = inspect.signature(original)
        new_sig = inspect.signature(replacement)
    except (TypeError, ValueError) as problem:
        LOGGER.debug('Skipping signature check of %r: %s',
                     replacement, problem)
        return True
    for args, kwargs in call_shapes(old_sig):
        try:
            new_sig.bind(*args, **kwargs)
        except TypeError:
            return False
    old_ret = old_sig.return_annotation
    new_ret = new_sig.return_annotation
    if isinstance(old_ret, type) and isinstance(new_ret, type):
        return issubclass(new_ret, old_ret)
    return True


def check_assignable(ref: Ref, value) -> None:
    """Make sure value may be stored in the cell ref points at.

    Raises:
        UnassignableValueError: If value does not fit the cell.
    """
    current = ref.get()
    hint = ref.declared_type()
    if hint is not None:
        compatible = matches_hint(hint, value)
        cell_type = type_name(hint)
    elif is_plain_callable(current):
        compatible = callable(value)
        cell_type = describe_value_type(current)
    else:
        compatible = current is None or isinstance(value, type(current))
        cell_type = type(current).__name__
    if compatible and is_plain_callable(current) and callable(value):
        compatible = signatures_compatible(current, value)
        cell_type = describe_value_type(current)
    if not compatible:
        raise UnassignableValueError(
            f'cannot assign {describe_value_type(value)} type to '
            f'variable type {cell_type}')


class VariableSetter(PatchContext, BaseModel):
    """Patch which sets a variable and later puts back the original.

    Use `set_variable` to make one.  Construction fails right away if
    the target is not writable or, unless `strict` is off, if the value
    does not fit the variable.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    target: Annotated[Ref, Field(description=(
        'Reference to the cell holding the variable to patch.'))]

    value: Annotated[Any, Field(description=(
        'Value stored in the variable while the patch is installed.'))]

    strict: Annotated[bool, Field(default_factory=default_strict,
                                  description=(
        'Whether to check that value fits the variable.'))]

    _original: Any = PrivateAttr(default=None)
    _applied: bool = PrivateAttr(default=False)

    @field_validator('target', mode='before')
    @classmethod
    def check_target(cls, target):
        return resolve_target(target)

    def model_post_init(self, __context):
        if self.strict:
            check_assignable(self.target, self.value)

    def install(self):
        """Save the current value of the variable and set the new one.
        """
        if self._applied:
            return self

        LOGGER.debug('Patching variable %s', self.target.describe())
        self._original = self.target.snapshot()
        self.target.set(self.value)
        self._applied = True

        return self

    def restore(self):
        """Put back the value the variable had when installed.
        """
        if not self._applied:
            return self

        LOGGER.debug('Restoring variable %s', self.target.describe())
        self.target.rollback(self._original)
        self._original = None
        self._applied = False

        return self


def set_variable(target, value, strict: Optional[bool] = None
                 ) -> VariableSetter:
    """Make a patch setting the variable named by target to value.

    Args:
        target: A Ref, an ``(owner, name)`` tuple or a dotted path.
        value: Value to store in the variable while installed.
        strict: Whether to check the type of value; defaults to the
                PATCHKIT_STRICT environment variable (on).

    Returns:
        An uninstalled VariableSetter.

    Raises:
        UnsettableVariableError: If target is not a writable variable.
        UnassignableValueError: If value does not fit the variable.
    """
    if strict is None:
        return VariableSetter(target=target, value=value)
    return VariableSetter(target=target, value=value, strict=strict)
