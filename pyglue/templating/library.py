"""C++ glue templates for wrapped functions, accessors and registrations.

Each template is written across several lines for readability and flattened
to one line when loaded: inline output replaces an annotated declaration in
place, so it must never add lines to the file it is written into.

Placeholders are ``$KEY`` tokens from ``KEYS``. ``$CT``, ``$CL`` and ``$BT``
are resolved by the linker once concrete template arguments are known, so
generation passes them through unchanged (see ``DEFERRED``).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict

from .engine import Template

FREE_FUNCTION = "free_function"
MEMBER_FUNCTION = "member_function"
CONSTRUCTOR = "constructor"
REGISTER_METHOD = "register_method"
GETSET = "getset"
REGISTER_GETSET = "register_getset"
REGISTER_CLASS = "register_class"

KEYS: tuple[str, ...] = (
    "FUNCNAME",
    "ARGLOADER",
    "CLASS",
    "CTPL",
    "CALLSTRING",
    "RET_VOID",
    "NAME",
    "PYNAME",
    "INWARD",
    "OUTWARD",
    "BASE",
    "BTPL",
    "TPL",
    "CT",
    "CL",
    "BT",
)

DEFERRED: Dict[str, str] = {"CT": "$CT", "CL": "$CL", "BT": "$BT"}

_SOURCES: Dict[str, str] = {
    FREE_FUNCTION: """
        static PyObject* _P_$FUNCNAME (PyObject* _self, PyObject* _linargs, PyObject* _kwds) {
            try {
                PbArgs _args(_linargs, _kwds);
                FluidSolver *parent = _args.obtainParent();
                pbPreparePlugin(parent, "$FUNCNAME");
                PyObject *_retval = 0;
                {
                    ArgLocker _lock;
                    $ARGLOADER
                    @IF(RET_VOID)
                        _retval = getPyNone();
                        $FUNCNAME($CALLSTRING);
                    @ELSE
                        _retval = toPy($FUNCNAME($CALLSTRING));
                    @END
                    _args.check();
                }
                pbFinalizePlugin(parent, "$FUNCNAME");
                return _retval;
            } catch(std::exception& e) {
                pbSetError("$FUNCNAME", e.what());
                return 0;
            }
        }
        static const PbRegister _RP_$FUNCNAME ("", "$FUNCNAME", _P_$FUNCNAME);
    """,
    MEMBER_FUNCTION: """
        static PyObject* _$FUNCNAME (PyObject* _self, PyObject* _linargs, PyObject* _kwds) {
            try {
                PbArgs _args(_linargs, _kwds);
                $CLASS* pbo = dynamic_cast<$CLASS*>(PbClass::fromPyObject(_self));
                pbPreparePlugin(pbo->getParent(), "$CLASS::$FUNCNAME");
                PyObject *_retval = 0;
                {
                    ArgLocker _lock;
                    $ARGLOADER
                    pbo->_args.copy(_args);
                    @IF(RET_VOID)
                        _retval = getPyNone();
                        pbo->$FUNCNAME($CALLSTRING);
                    @ELSE
                        _retval = toPy(pbo->$FUNCNAME($CALLSTRING));
                    @END
                    _args.check();
                }
                pbFinalizePlugin(pbo->getParent(), "$CLASS::$FUNCNAME");
                return _retval;
            } catch(std::exception& e) {
                pbSetError("$CLASS::$FUNCNAME", e.what());
                return 0;
            }
        }
    """,
    CONSTRUCTOR: """
        static int _$CLASS (PyObject* _self, PyObject* _linargs, PyObject* _kwds) {
            PbClass* obj = PbClass::fromPyObject(_self);
            if (obj) delete obj;
            try {
                PbArgs _args(_linargs, _kwds);
                pbPreparePlugin(0, "$CLASS::$FUNCNAME");
                {
                    ArgLocker _lock;
                    $ARGLOADER
                    obj = new $CLASS($CALLSTRING);
                    std::string _name = _args.getOpt<std::string>("name", "");
                    obj->setPyObject(_self);
                    if (!_name.empty()) obj->setName(_name);
                    _args.check();
                }
                pbFinalizePlugin(obj->getParent(), "$CLASS::$FUNCNAME");
                return 0;
            } catch(std::exception& e) {
                pbSetError("$CLASS::$FUNCNAME", e.what());
                return -1;
            }
        }
    """,
    REGISTER_METHOD: """
        @IF(CTPL)
            static const PbRegister _R_$CLASS_$CL_$FUNCNAME ("$CLASS<$CTPL>","$FUNCNAME",$CLASS<$CTPL>::_$FUNCNAME);
        @ELSE
            static const PbRegister _R_$CLASS_$FUNCNAME ("$CLASS","$FUNCNAME",$CLASS::_$FUNCNAME);
        @END
    """,
    GETSET: """
        static PyObject* _GET_$NAME(PyObject* self, void* cl) {
            $CLASS* pbo = dynamic_cast<$CLASS*>(PbClass::fromPyObject(self));
            return $OUTWARD;
        }
        static int _SET_$NAME(PyObject* self, PyObject* val, void* cl) {
            $CLASS* pbo = dynamic_cast<$CLASS*>(PbClass::fromPyObject(self));
            pbo->$NAME = $INWARD;
            return 0;
        }
    """,
    REGISTER_GETSET: """
        @IF(CTPL)
            static const PbRegister _R_$CLASS_$CL_$NAME ("$CLASS<$CTPL>","$PYNAME",$CLASS<$CTPL>::_GET_$NAME,$CLASS<$CTPL>::_SET_$NAME);
        @ELSE
            static const PbRegister _R_$CLASS_$NAME ("$CLASS","$PYNAME",$CLASS::_GET_$NAME,$CLASS::_SET_$NAME);
        @END
    """,
    # The constructor wrapper is registered together with its class.
    REGISTER_CLASS: """
        @IF(TPL)
            static const PbRegister _R_$CLASS_$CL ("$CLASS<$CT>","$PYNAME<$CT>","$BASE$BTPL");
            static const PbRegister _R_$CLASS_$CL_init ("$CLASS<$CT>","$CLASS",$CLASS<$CT>::_$CLASS);
            template<> const char* $CLASS<$CT>::_class = "$CLASS<$CT>";
        @ELSE
            static const PbRegister _R_$CLASS ("$CLASS","$PYNAME","$BASE$BTPL");
            static const PbRegister _R_$CLASS_init ("$CLASS","$CLASS",$CLASS::_$CLASS);
            const char* $CLASS::_class = "$CLASS";
        @END
    """,
}


def flatten(source: str) -> str:
    """Collapse a multi-line template onto one line, one space between tokens."""
    return " ".join(source.split())


@lru_cache(maxsize=None)
def get_template(name: str) -> Template:
    """Return the parsed template registered under ``name``."""
    try:
        source = _SOURCES[name]
    except KeyError as exc:
        raise KeyError(f"Unknown glue template '{name}'") from exc
    return Template(flatten(source), KEYS)


def template_names() -> tuple[str, ...]:
    return tuple(_SOURCES)


__all__ = [
    "CONSTRUCTOR",
    "DEFERRED",
    "FREE_FUNCTION",
    "GETSET",
    "KEYS",
    "MEMBER_FUNCTION",
    "REGISTER_CLASS",
    "REGISTER_GETSET",
    "REGISTER_METHOD",
    "flatten",
    "get_template",
    "template_names",
]
