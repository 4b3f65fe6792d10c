"""
Interpreter for frontmatter code

Walks the Program produced by FrontmatterParser and evaluates it against
an Environment, binding variables and possibly signalling a redirect.

Execution model:
- The whole frontmatter is parsed before anything runs; a ParseError
  therefore leaves the Environment untouched.
- Statements run sequentially; an EvalError aborts at the failing
  statement, leaving earlier bindings in place.
- A redirect is terminal: once signalled, no further statement at any
  nesting level runs.

Example:
    >>> env = Environment()
    >>> Interpreter(env).execute('var title = "Hi"')
    >>> env.variable_get("title")
    'Hi'
"""

from typing import Any, List, Optional

from ..models.environment import Environment
from ..models.host import HostObject
from ..models.syntax import (
    Assign,
    Binary,
    Call,
    Composite,
    ExprStmt,
    Identifier,
    IfStmt,
    ImportStmt,
    KeyValue,
    Literal,
    Node,
    Program,
    Selector,
    TypeRef,
    Unary,
    Unsupported,
    UnsupportedStmt,
    VarDecl,
)
from .errors import EvalError
from .frontmatter import FrontmatterParser
from .log import LOG
from . import values

INT_TYPES = {
    'int', 'int8', 'int16', 'int32', 'int64',
    'uint', 'uint8', 'uint16', 'uint32', 'uint64', 'uintptr', 'byte', 'rune',
}
FLOAT_TYPES = {'float32', 'float64'}


class Interpreter:
    """
    Tree-walking evaluator for frontmatter

    Builtins recognised in call position:
    - len(x)                   length of a List, Map or String
    - redirect(url, status)    also <api>.redirect / <api>.Redirect
    - pkg.Func(args)           host function from the Environment's registry
    - obj.Method(args)         method of a HostObject
    """

    def __init__(self, env: Environment) -> None:
        """
        Args:
            env: Environment to read and bind variables in
        """
        self.env = env

    def execute(self, code: str) -> None:
        """
        Parse and run frontmatter code

        Args:
            code: Frontmatter source text

        Raises:
            ParseError: If the code is malformed (nothing is executed)
            EvalError: If a statement fails (earlier bindings are kept)
        """
        program = FrontmatterParser(code).parse()
        LOG(f"Parsed frontmatter: {len(program.statements)} statements", level=3)
        self.program_run(program)

    def program_run(self, program: Program) -> None:
        self.block_run(program.statements)
        if self.env.shouldRedirect:
            redirect = self.env.redirect
            LOG(f"Frontmatter requested redirect to {redirect.url} ({redirect.status})", level=2)

    def expression_evaluate(self, code: str) -> Any:
        """
        Evaluate a standalone expression (e.g. a component attribute value)

        Raises:
            ParseError: If code is not a single expression
            EvalError: If evaluation fails
        """
        expr = FrontmatterParser(code).expression_parseOnly()
        return self.expression_eval(expr)

    # -- statements -----------------------------------------------------

    def block_run(self, statements: List[Node]) -> None:
        for statement in statements:
            if self.env.shouldRedirect:
                return
            try:
                self.statement_run(statement)
            except EvalError as exc:
                if exc.line or not statement.line:
                    raise
                raise EvalError(str(exc), line=statement.line) from exc

    def statement_run(self, statement: Node) -> None:
        if isinstance(statement, VarDecl):
            self.varDecl_run(statement)
        elif isinstance(statement, Assign):
            self.assign_run(statement)
        elif isinstance(statement, ExprStmt):
            self.expression_eval(statement.expr, multi=True)
        elif isinstance(statement, IfStmt):
            self.ifStmt_run(statement)
        elif isinstance(statement, ImportStmt):
            self.import_run(statement)
        elif isinstance(statement, UnsupportedStmt):
            raise EvalError(f"unsupported statement: {statement.keyword}")
        else:
            raise EvalError(f"unsupported statement: {type(statement).__name__}")

    def import_run(self, statement: ImportStmt) -> None:
        alias = statement.alias
        if alias and alias[0].isupper():
            # Component import, resolved by the compiler
            return
        if alias in ('_', '.'):
            return
        name = alias or statement.path.rstrip('/').rsplit('/', 1)[-1]
        self.env.packages[name] = statement.path

    def varDecl_run(self, statement: VarDecl) -> None:
        if not statement.values:
            for name in statement.names:
                self.bind(name, self.zeroValue_get(statement.type))
            return
        results = self.values_evaluate(statement.names, statement.values, statement.type)
        for name, value in zip(statement.names, results):
            self.bind(name, value)

    def assign_run(self, statement: Assign) -> None:
        if not statement.define:
            for name in statement.names:
                if name != '_' and not self.env.variable_has(name):
                    raise EvalError(f"undefined variable: {name}")
        results = self.values_evaluate(statement.names, statement.values, None)
        for name, value in zip(statement.names, results):
            self.bind(name, value)

    def values_evaluate(
        self, names: List[str], exprs: List[Node], type_ref: Optional[TypeRef]
    ) -> List[Any]:
        """
        Evaluate the right-hand side of a declaration or assignment

        Either one expression per name, or a single call returning exactly
        len(names) values.
        """
        if len(exprs) == len(names):
            return [self.typed_convert(self.expression_eval(expr, hint=type_ref), type_ref) for expr in exprs]
        if len(exprs) == 1 and isinstance(exprs[0], Call):
            result = self.expression_eval(exprs[0], multi=True)
            if isinstance(result, tuple) and len(result) == len(names):
                return [values.value_normalize(item) for item in result]
            count = len(result) if isinstance(result, tuple) else 1
            raise EvalError(
                f"assignment mismatch: {len(names)} variables but call returns {count} values"
            )
        raise EvalError(
            f"assignment mismatch: {len(names)} variables but {len(exprs)} values"
        )

    def bind(self, name: str, value: Any) -> None:
        if name == '_':
            return
        self.env.variable_set(name, value)
        LOG(f"Bound {name} = {value!r}", level=3)

    def ifStmt_run(self, statement: IfStmt) -> None:
        condition = self.expression_eval(statement.condition)
        if not isinstance(condition, bool):
            raise EvalError(
                f"if condition must be boolean, got {values.typeName_get(condition)}"
            )
        if condition:
            self.block_run(statement.body)
        elif isinstance(statement.orelse, IfStmt):
            self.block_run([statement.orelse])
        elif statement.orelse is not None:
            self.block_run(statement.orelse)

    # -- expressions ----------------------------------------------------

    def expression_eval(self, expr: Node, multi: bool = False, hint: Optional[TypeRef] = None) -> Any:
        """
        Evaluate an expression node

        Args:
            expr: Expression node
            multi: Allow a multi-value (tuple) call result
            hint: Implied type for an untyped composite literal

        Returns:
            Value from the value model
        """
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Identifier):
            if not self.env.variable_has(expr.name):
                raise EvalError(f"undefined variable: {expr.name}")
            return self.env.variable_get(expr.name)
        if isinstance(expr, Selector):
            return self.selector_eval(expr)
        if isinstance(expr, Binary):
            # Both operands are always evaluated (no short-circuit)
            left = self.expression_eval(expr.left)
            right = self.expression_eval(expr.right)
            return values.binary_apply(expr.op, left, right)
        if isinstance(expr, Unary):
            return values.unary_apply(expr.op, self.expression_eval(expr.operand))
        if isinstance(expr, Call):
            result = self.call_eval(expr)
            if isinstance(result, tuple) and not multi:
                raise EvalError(f"multiple-value call used as a single value ({len(result)} values)")
            return result
        if isinstance(expr, Composite):
            return self.composite_eval(expr, hint)
        if isinstance(expr, KeyValue):
            raise EvalError("unexpected key: value outside a composite literal")
        if isinstance(expr, Unsupported):
            raise EvalError(f"unsupported expression: {expr.construct}")
        raise EvalError(f"unsupported expression type: {type(expr).__name__}")

    def selector_eval(self, expr: Selector) -> Any:
        target = expr.target
        if isinstance(target, Identifier) and not self.env.variable_has(target.name):
            if self.package_get(target.name) is not None:
                raise EvalError(f"{target.name}.{expr.name} must be called")
        return values.field_select(self.expression_eval(target), expr.name)

    def package_get(self, name: str) -> Optional[str]:
        """Registry package an identifier refers to, if any"""
        registry = self.env.registry
        path = self.env.packages.get(name)
        if path is not None:
            for candidate in (path, path.rstrip('/').rsplit('/', 1)[-1]):
                if registry.package_has(candidate):
                    return candidate
        if registry.package_has(name):
            return name
        return None

    def call_eval(self, expr: Call) -> Any:
        func = expr.func

        if isinstance(func, Identifier):
            if func.name.lower() == 'redirect' and not self.env.variable_has(func.name):
                return self.redirect_call(expr.args)
            if func.name == 'len' and not self.env.variable_has('len'):
                return self.len_call(expr.args)
            raise EvalError(f"unsupported function call: {func.name}")

        if isinstance(func, Selector):
            target = func.target
            if isinstance(target, Identifier):
                if target.name == self.env.apiName and func.name.lower() == 'redirect':
                    return self.redirect_call(expr.args)
                if not self.env.variable_has(target.name):
                    return self.packageFunction_call(target.name, func.name, expr.args)
            receiver = self.expression_eval(target)
            if isinstance(receiver, HostObject):
                args = [self.expression_eval(arg) for arg in expr.args]
                try:
                    return self.result_normalize(receiver.method_call(func.name, args))
                except EvalError:
                    raise
                except Exception as exc:
                    raise EvalError(
                        f"{values.typeName_get(receiver)}.{func.name} failed: {exc}"
                    ) from exc
            raise EvalError(
                f"unsupported function call: {func.name} on {values.typeName_get(receiver)}"
            )

        raise EvalError("unsupported function call")

    def packageFunction_call(self, package_name: str, name: str, arg_nodes: List[Node]) -> Any:
        package = self.package_get(package_name)
        function = self.env.registry.function_get(package, name) if package else None
        if function is None:
            raise EvalError(f"unsupported function call: {package_name}.{name}")
        args = [self.expression_eval(arg) for arg in arg_nodes]
        LOG(f"Calling {package}.{name} with {len(args)} arguments", level=3)
        try:
            return self.result_normalize(function(*args))
        except EvalError:
            raise
        except Exception as exc:
            raise EvalError(f"{package_name}.{name} failed: {exc}") from exc

    @staticmethod
    def result_normalize(result: Any) -> Any:
        """Keep top-level tuples as multi-value results, normalize everything else"""
        if isinstance(result, tuple):
            return tuple(values.value_normalize(item) for item in result)
        return values.value_normalize(result)

    def len_call(self, arg_nodes: List[Node]) -> int:
        if len(arg_nodes) != 1:
            raise EvalError("len expects 1 argument")
        arg = self.expression_eval(arg_nodes[0])
        if values.kind_get(arg) in ('list', 'map', 'string'):
            return len(arg)
        raise EvalError(f"invalid argument for len: {values.typeName_get(arg)}")

    def redirect_call(self, arg_nodes: List[Node]) -> None:
        if len(arg_nodes) != 2:
            raise EvalError("redirect expects 2 arguments (url, status)")
        url = self.expression_eval(arg_nodes[0])
        if values.kind_get(url) != 'string':
            raise EvalError("redirect URL must be string")
        status = self.expression_eval(arg_nodes[1])
        if values.kind_get(status) != 'int':
            raise EvalError("redirect status must be int")
        self.env.redirect_set(url, status)
        return None

    # -- composite literals ---------------------------------------------

    def composite_eval(self, expr: Composite, hint: Optional[TypeRef]) -> Any:
        """
        Evaluate a composite literal

        Typed list literals ([]T{...}, [N]T{...}) produce Lists, map literals
        (map[string]T{...}) produce Maps. Untyped {...} literals take their
        type from the enclosing literal, or become a Map when their first
        element is a key: value pair.
        """
        type_ref = expr.type or hint
        if type_ref is None or type_ref.kind not in ('slice', 'array', 'map'):
            if expr.elements and isinstance(expr.elements[0], KeyValue):
                return self.mapLiteral_eval(expr, None)
            raise EvalError("unsupported composite literal")
        if type_ref.kind == 'map':
            return self.mapLiteral_eval(expr, type_ref)

        result = []
        for element in expr.elements:
            if isinstance(element, KeyValue):
                raise EvalError("indexed elements in list literals are not supported")
            value = self.expression_eval(element, hint=type_ref.elem)
            result.append(self.typed_convert(value, type_ref.elem))
        return result

    def mapLiteral_eval(self, expr: Composite, type_ref: Optional[TypeRef]) -> dict:
        value_type = type_ref.elem if type_ref else None
        result = {}
        for element in expr.elements:
            if not isinstance(element, KeyValue):
                raise EvalError("expected key-value pair in map literal")
            key = self.expression_eval(element.key)
            if not isinstance(key, str):
                raise EvalError(f"map keys must be strings, got {values.typeName_get(key)}")
            value = self.expression_eval(element.value, hint=value_type)
            result[key] = self.typed_convert(value, value_type)
        return result

    @staticmethod
    def typed_convert(value: Any, type_ref: Optional[TypeRef]) -> Any:
        """Convert integer constants in float-typed positions to Float64"""
        if (
            type_ref is not None
            and type_ref.kind == 'name'
            and type_ref.name in FLOAT_TYPES
            and values.kind_get(value) == 'int'
        ):
            return float(value)
        return value

    @staticmethod
    def zeroValue_get(type_ref: Optional[TypeRef]) -> Any:
        if type_ref is None or type_ref.kind != 'name':
            return None
        if type_ref.name in INT_TYPES:
            return 0
        if type_ref.name in FLOAT_TYPES:
            return 0.0
        if type_ref.name == 'string':
            return ""
        if type_ref.name == 'bool':
            return False
        return None
