"""Dispatch on the runtime type of the first argument.

Analyses over ``ast`` trees register one handler per node class with
``@dispatch(ast.If)`` and a fallback with ``@defaultdispatch``. The metaclass
collects the handlers of a class and its bases into a lookup table; lookups
for subclasses walk the MRO once and are then cached.
"""

__all__ = [
    "TypeDispatcher",
    "defaultdispatch",
    "dispatch",
    "TypeDispatchError",
    "TypeDispatchDeclarationError",
]

import inspect


class TypeDispatchError(Exception):
    """Raised when no handler, not even the default, accepts an object."""
    pass


class TypeDispatchDeclarationError(Exception):
    """Raised while building a dispatcher class with conflicting handlers."""
    pass


def _flatten_types(types, result):
    for child in types:
        if isinstance(child, (list, tuple)):
            _flatten_types(child, result)
        elif isinstance(child, type):
            result.append(child)
        else:
            raise TypeDispatchDeclarationError("Expected a type, got %r instead." % (child,))


def dispatch(*types):
    """Mark a method as the handler for the given types."""
    def mark(f):
        handled = []
        _flatten_types(types, handled)
        f.__dispatch__ = tuple(handled)
        return f

    return mark


def defaultdispatch(f):
    """Mark a method as the handler used when no type matches."""
    f.__dispatch__ = (None,)
    return f


def _dispatch_call(self, node, *args):
    t = type(node)
    table = self.__typeDispatchTable__
    func = table.get(t)

    if func is None:
        for supercls in t.mro():
            func = table.get(supercls)
            if func is not None:
                break
        else:
            func = table[None]
        table[t] = func

    return func(self, node, *args)


def _raise_unhandled(self, node, *args):
    raise TypeDispatchError("%r cannot handle %r\n%r" % (type(self), type(node), node))


_raise_unhandled.__dispatch__ = (None,)


class typedispatcher(type):
    """Metaclass building ``__typeDispatchTable__`` from marked methods."""

    def __new__(mcs, name, bases, d):
        lut = {}

        for value in d.values():
            for t in getattr(value, "__dispatch__", ()):
                if t in lut:
                    raise TypeDispatchDeclarationError(
                        "%s has declared multiple handlers for type %s"
                        % (name, getattr(t, "__name__", "default"))
                    )
                lut[t] = value

        # Handlers of the bases, unless overridden here.
        for base in bases:
            for ancestor in inspect.getmro(base):
                for t, func in getattr(ancestor, "__typeDispatchTable__", {}).items():
                    lut.setdefault(t, func)

        if None not in lut:
            raise TypeDispatchDeclarationError("%s has no default dispatch" % (name,))

        d["__typeDispatchTable__"] = lut
        return type.__new__(mcs, name, bases, d)


class TypeDispatcher(object, metaclass=typedispatcher):
    """
    Base class for type-dispatched visitors.

    Example:
        >>> class Kind(TypeDispatcher):
        ...     @dispatch(int)
        ...     def visitInt(self, obj):
        ...         return "integer"
        ...     @defaultdispatch
        ...     def visitOther(self, obj):
        ...         return "other"
        >>> Kind()(3), Kind()("x")
        ('integer', 'other')
    """
    __call__ = _dispatch_call
    exceptionDefault = _raise_unhandled
