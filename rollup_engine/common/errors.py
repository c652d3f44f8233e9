class RollupEngineError(Exception):
    """Base class for every error the engine reports to the caller."""


class ConfigError(RollupEngineError):
    pass


# ---------------- LOADING ----------------
class LoadError(RollupEngineError):
    pass


class SourceNotFoundError(LoadError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Data source not found: '{path}'")


class SheetNotFoundError(LoadError):
    def __init__(self, sheet, path, available=None):
        self.sheet = sheet
        self.path = path
        self.available = list(available or [])
        msg = f"Couldn't open the sheet '{sheet}' in file '{path}'"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class SchemaError(LoadError):
    pass


class MalformedRowError(LoadError):
    def __init__(self, row_number, field, value, reason="not a valid number"):
        self.row_number = row_number
        self.field = field
        self.value = value
        super().__init__(
            f"Malformed row {row_number}: field '{field}' = {value!r} is {reason}"
        )


# ---------------- DATA ----------------
class DataError(RollupEngineError):
    pass


class DuplicateIdError(DataError):
    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"Duplicate node id {node_id}")


class NodeNotFoundError(DataError):
    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"No node with id {node_id}")


class RootError(DataError):
    pass


class DanglingParentError(DataError):
    def __init__(self, node_id, parent_id):
        self.node_id = node_id
        self.parent_id = parent_id
        super().__init__(
            f"Node {node_id} references parent {parent_id} which does not exist"
        )


class CycleError(DataError):
    def __init__(self, node_ids):
        self.node_ids = list(node_ids)
        chain = " -> ".join(str(i) for i in self.node_ids + self.node_ids[:1])
        super().__init__(f"Cycle detected in parent graph: {chain}")

    @property
    def node_id(self):
        return self.node_ids[0]


class IncompleteLeafError(DataError):
    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"Node {node_id} has no children and no unit cost")


# ---------------- REPORT ----------------
class ReportError(RollupEngineError):
    pass


class IncompleteRollupError(ReportError):
    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"Node {node_id} has no computed cost; rollup incomplete")


class RenderError(ReportError):
    pass


class OutputWriteError(ReportError):
    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Could not write output file '{path}': {reason}")
