"""Action registry: the catalogue of supported inventory actions.

Each action carries its parameter schema plus keywords and examples. The
keywords and examples brief the external classifier/extractor; locally only
the fallback parser relies on phrasing.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

ParameterType = Literal["string", "number", "boolean", "array", "object"]

ActionCategory = Literal[
    "STOCK_MANAGEMENT",
    "CATALOGUE_MANAGEMENT",
    "CUSTOMER_MANAGEMENT",
    "EQUIPMENT_MANAGEMENT",
    "JOB_MANAGEMENT",
    "SUPPLIER_MANAGEMENT",
    "GENERAL",
]


@dataclass(frozen=True)
class ParameterDefinition:
    """Schema entry for a single action parameter."""

    name: str
    type: ParameterType
    required: bool
    description: str
    examples: tuple[str, ...] = ()


@dataclass(frozen=True)
class ActionExample:
    """Sample utterance with the parameters it should produce."""

    input: str
    expected_params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionDefinition:
    """Definition of a supported action."""

    name: str
    category: ActionCategory
    description: str
    keywords: frozenset[str]
    parameters: tuple[ParameterDefinition, ...]
    examples: tuple[ActionExample, ...] = ()

    @property
    def required_parameters(self) -> list[str]:
        """Names of required parameters, in schema order."""
        return [p.name for p in self.parameters if p.required]

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]


ACTION_REGISTRY: tuple[ActionDefinition, ...] = (
    # Stock management
    ActionDefinition(
        name="ADD_STOCK",
        category="STOCK_MANAGEMENT",
        description=(
            "Add stock to inventory at a location. Used when receiving, adding, "
            "or putting items into stock."
        ),
        keywords=frozenset(
            {"add", "receive", "received", "put", "into", "got", "to", "stock",
             "warehouse", "van", "rack", "bin"}
        ),
        parameters=(
            ParameterDefinition("item", "string", True, "Item name or part number",
                                ("M10 nuts", "LMV37", "cable 0.75mm")),
            ParameterDefinition("partNumber", "string", False,
                                "Part number if different from item", ("M10-NUTS", "LMV37.100")),
            ParameterDefinition("quantity", "number", True, "Quantity to add", ("5", "10", "100")),
            ParameterDefinition("location", "string", True, "Location where stock is added",
                                ("warehouse", "van", "rack 1 bin6")),
            ParameterDefinition("supplier", "string", False, "Supplier name",
                                ("Acme Corp", "ABC Industries")),
            ParameterDefinition("notes", "string", False, "Additional notes"),
        ),
        examples=(
            ActionExample("Add 5 M10 nuts to rack 1 bin6",
                          {"item": "M10 nuts", "quantity": 5, "location": "rack 1 bin6"}),
            ActionExample("Received 20 bearings into warehouse",
                          {"item": "bearings", "quantity": 20, "location": "warehouse"}),
            ActionExample("Put 10 LMV37 into van",
                          {"item": "LMV37", "quantity": 10, "location": "van"}),
        ),
    ),
    ActionDefinition(
        name="REMOVE_STOCK",
        category="STOCK_MANAGEMENT",
        description="Remove stock from inventory. Used when using, taking, or consuming items.",
        keywords=frozenset({"remove", "use", "used", "take", "took", "from", "consume"}),
        parameters=(
            ParameterDefinition("item", "string", True, "Item name or part number"),
            ParameterDefinition("partNumber", "string", False, "Part number if different"),
            ParameterDefinition("quantity", "number", True, "Quantity to remove"),
            ParameterDefinition("location", "string", True, "Location to remove from"),
            ParameterDefinition("reason", "string", False, "Reason for removal",
                                ("job", "installation", "damaged")),
            ParameterDefinition("jobNumber", "string", False, "Related job number"),
        ),
        examples=(
            ActionExample("Used 2 filters from van",
                          {"item": "filters", "quantity": 2, "location": "van"}),
            ActionExample("Remove 5 bearings from warehouse",
                          {"item": "bearings", "quantity": 5, "location": "warehouse"}),
            ActionExample("Take 3 sensors from rack 5",
                          {"item": "sensors", "quantity": 3, "location": "rack 5"}),
        ),
    ),
    ActionDefinition(
        name="TRANSFER_STOCK",
        category="STOCK_MANAGEMENT",
        description="Transfer stock between locations.",
        keywords=frozenset({"move", "transfer", "from", "to"}),
        parameters=(
            ParameterDefinition("item", "string", True, "Item name or part number"),
            ParameterDefinition("partNumber", "string", False, "Part number"),
            ParameterDefinition("quantity", "number", True, "Quantity to transfer"),
            ParameterDefinition("fromLocation", "string", True, "Source location"),
            ParameterDefinition("toLocation", "string", True, "Destination location"),
            ParameterDefinition("notes", "string", False, "Transfer notes"),
        ),
        examples=(
            ActionExample(
                "Move 10 bolts from warehouse to van",
                {"item": "bolts", "quantity": 10, "fromLocation": "warehouse", "toLocation": "van"},
            ),
            ActionExample(
                "Transfer 5 filters from rack 1 to van 2",
                {"item": "filters", "quantity": 5, "fromLocation": "rack 1", "toLocation": "van 2"},
            ),
        ),
    ),
    ActionDefinition(
        name="COUNT_STOCK",
        category="STOCK_MANAGEMENT",
        description="Verify or count actual stock quantity. Used for stock takes and audits.",
        keywords=frozenset({"count", "got", "have", "verify", "check", "audit"}),
        parameters=(
            ParameterDefinition("item", "string", True, "Item name or part number"),
            ParameterDefinition("partNumber", "string", False, "Part number"),
            ParameterDefinition("quantity", "number", True, "Counted quantity"),
            ParameterDefinition("countedQuantity", "number", False, "Alias for quantity"),
            ParameterDefinition("location", "string", True, "Location where counting happened"),
            ParameterDefinition("notes", "string", False, "Count notes"),
        ),
        examples=(
            ActionExample("I've got 50 bearings on shelf A",
                          {"item": "bearings", "quantity": 50, "location": "shelf A"}),
            ActionExample("Count 25 filters in warehouse",
                          {"item": "filters", "quantity": 25, "location": "warehouse"}),
        ),
    ),
    ActionDefinition(
        name="SEARCH_STOCK",
        category="STOCK_MANAGEMENT",
        description="Search for items currently in stock with quantity > 0.",
        keywords=frozenset({"what", "search", "find", "show", "list", "stock", "have", "got"}),
        parameters=(
            ParameterDefinition("search", "string", True, "Search term"),
            ParameterDefinition("item", "string", False, "Alias for search"),
            ParameterDefinition("location", "string", False, "Filter by location"),
        ),
        examples=(
            ActionExample("What bearings do we have?", {"search": "bearings"}),
            ActionExample("Search stock for filters", {"search": "filters"}),
            ActionExample("Show me bolts in warehouse", {"search": "bolts", "location": "warehouse"}),
        ),
    ),
    ActionDefinition(
        name="LOW_STOCK_REPORT",
        category="STOCK_MANAGEMENT",
        description="Get items with stock below minimum quantity.",
        keywords=frozenset({"low", "stock", "report", "below", "minimum", "reorder"}),
        parameters=(ParameterDefinition("location", "string", False, "Filter by location"),),
        examples=(
            ActionExample("Show low stock items", {}),
            ActionExample("Low stock report for warehouse", {"location": "warehouse"}),
        ),
    ),
    # Catalogue management
    ActionDefinition(
        name="ADD_PRODUCT",
        category="CATALOGUE_MANAGEMENT",
        description="Add a new product to the catalogue. Creates a catalogue entry with pricing.",
        keywords=frozenset(
            {"add", "new", "item", "product", "catalogue", "catalog", "create", "cost",
             "price", "markup"}
        ),
        parameters=(
            ParameterDefinition("partNumber", "string", True, "Part number/SKU"),
            ParameterDefinition("name", "string", True, "Product name"),
            ParameterDefinition("description", "string", False, "Product description"),
            ParameterDefinition("manufacturer", "string", False, "Manufacturer name"),
            ParameterDefinition("category", "string", False, "Product category"),
            ParameterDefinition("unitCost", "number", False, "Cost price per unit"),
            ParameterDefinition("markup", "number", False, "Markup percentage"),
            ParameterDefinition("sellPrice", "number", False, "Selling price"),
            ParameterDefinition("minQuantity", "number", False, "Minimum stock level"),
            ParameterDefinition("preferredSupplierName", "string", False, "Preferred supplier"),
        ),
        examples=(
            ActionExample(
                "Add new item cable 0.75mm cost 25 markup 35%",
                {"partNumber": "cable", "name": "cable 0.75mm", "unitCost": 25, "markup": 35},
            ),
            ActionExample(
                "Create product Siemens LMV37.100 cost 450 markup 40%",
                {"partNumber": "LMV37.100", "name": "Siemens LMV37.100", "unitCost": 450,
                 "markup": 40},
            ),
        ),
    ),
    ActionDefinition(
        name="UPDATE_PRODUCT",
        category="CATALOGUE_MANAGEMENT",
        description="Update an existing catalogue item.",
        keywords=frozenset({"update", "change", "modify", "product", "item", "price", "cost"}),
        parameters=(
            ParameterDefinition("partNumber", "string", True, "Part number to update"),
            ParameterDefinition("name", "string", False, "Updated name"),
            ParameterDefinition("unitCost", "number", False, "Updated cost"),
            ParameterDefinition("markup", "number", False, "Updated markup"),
            ParameterDefinition("sellPrice", "number", False, "Updated sell price"),
            ParameterDefinition("minQuantity", "number", False, "Updated minimum quantity"),
        ),
        examples=(ActionExample("Update LMV37 cost to 500", {"partNumber": "LMV37", "unitCost": 500}),),
    ),
    ActionDefinition(
        name="SEARCH_CATALOGUE",
        category="CATALOGUE_MANAGEMENT",
        description="Search the product catalogue.",
        keywords=frozenset({"search", "find", "catalogue", "catalog", "product", "item"}),
        parameters=(
            ParameterDefinition("search", "string", True, "Search term"),
            ParameterDefinition("category", "string", False, "Filter by category"),
            ParameterDefinition("manufacturer", "string", False, "Filter by manufacturer"),
        ),
        examples=(
            ActionExample("Search catalogue for cables", {"search": "cables"}),
            ActionExample("Find Siemens products", {"search": "Siemens"}),
        ),
    ),
    # Customer management
    ActionDefinition(
        name="ADD_CUSTOMER",
        category="CUSTOMER_MANAGEMENT",
        description="Create a new customer.",
        keywords=frozenset({"new", "add", "create", "customer", "client"}),
        parameters=(
            ParameterDefinition("name", "string", True, "Customer name"),
            ParameterDefinition("type", "string", False,
                                "Customer type: commercial, residential, or industrial"),
            ParameterDefinition("contactName", "string", False, "Primary contact name"),
            ParameterDefinition("email", "string", False, "Email address"),
            ParameterDefinition("phone", "string", False, "Phone number"),
        ),
        examples=(
            ActionExample("New customer ABC Heating", {"name": "ABC Heating"}),
            ActionExample("Add customer XYZ Industries", {"name": "XYZ Industries"}),
        ),
    ),
    ActionDefinition(
        name="UPDATE_CUSTOMER",
        category="CUSTOMER_MANAGEMENT",
        description="Update customer information.",
        keywords=frozenset({"update", "change", "modify", "customer"}),
        parameters=(
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("contactName", "string", False, "Updated contact name"),
            ParameterDefinition("email", "string", False, "Updated email"),
            ParameterDefinition("phone", "string", False, "Updated phone"),
        ),
        examples=(
            ActionExample(
                "Update ABC Heating contact to John Smith",
                {"customerName": "ABC Heating", "contactName": "John Smith"},
            ),
        ),
    ),
    ActionDefinition(
        name="ADD_SITE",
        category="CUSTOMER_MANAGEMENT",
        description="Add a site address to a customer.",
        keywords=frozenset({"add", "new", "site", "address", "location", "for"}),
        parameters=(
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("siteName", "string", True, "Site name"),
            ParameterDefinition("address", "string", True, "Site address"),
            ParameterDefinition("postcode", "string", False, "Postcode"),
        ),
        examples=(
            ActionExample(
                "Add site Main Office for ABC Heating at 123 High St",
                {"customerName": "ABC Heating", "siteName": "Main Office", "address": "123 High St"},
            ),
        ),
    ),
    ActionDefinition(
        name="SEARCH_CUSTOMERS",
        category="CUSTOMER_MANAGEMENT",
        description="Search for customers.",
        keywords=frozenset({"search", "find", "list", "customer", "client"}),
        parameters=(ParameterDefinition("search", "string", True, "Search term"),),
        examples=(ActionExample("Find customer ABC", {"search": "ABC"}),),
    ),
    # Job management
    ActionDefinition(
        name="CREATE_JOB",
        category="JOB_MANAGEMENT",
        description="Create a new work order or job.",
        keywords=frozenset(
            {"new", "create", "job", "work order", "for", "repair", "service", "installation"}
        ),
        parameters=(
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("type", "string", False,
                                "Job type: service, repair, installation, maintenance"),
            ParameterDefinition("description", "string", False, "Job description"),
            ParameterDefinition("equipmentName", "string", False, "Equipment name"),
            ParameterDefinition("priority", "string", False, "Priority: low, normal, high, emergency"),
        ),
        examples=(
            ActionExample(
                "New job for ABC Heating - boiler repair",
                {"customerName": "ABC Heating", "description": "boiler repair", "type": "repair"},
            ),
            ActionExample("Create service job for XYZ Ltd",
                          {"customerName": "XYZ Ltd", "type": "service"}),
        ),
    ),
    ActionDefinition(
        name="UPDATE_JOB",
        category="JOB_MANAGEMENT",
        description="Update job details.",
        keywords=frozenset({"update", "change", "job"}),
        parameters=(
            ParameterDefinition("jobNumber", "string", True, "Job number"),
            ParameterDefinition("status", "string", False, "Job status"),
            ParameterDefinition("notes", "string", False, "Job notes"),
        ),
        examples=(
            ActionExample("Update job 1234 status to completed",
                          {"jobNumber": "1234", "status": "completed"}),
        ),
    ),
    ActionDefinition(
        name="COMPLETE_JOB",
        category="JOB_MANAGEMENT",
        description="Mark a job as completed.",
        keywords=frozenset({"complete", "finish", "done", "job"}),
        parameters=(
            ParameterDefinition("jobNumber", "string", True, "Job number"),
            ParameterDefinition("workCarriedOut", "string", False, "Work description"),
            ParameterDefinition("notes", "string", False, "Completion notes"),
        ),
        examples=(ActionExample("Complete job 1234", {"jobNumber": "1234"}),),
    ),
    ActionDefinition(
        name="ADD_PARTS_TO_JOB",
        category="JOB_MANAGEMENT",
        description="Add parts used on a job.",
        keywords=frozenset({"add", "parts", "to", "job", "used"}),
        parameters=(
            ParameterDefinition("jobNumber", "string", True, "Job number"),
            ParameterDefinition("partNumber", "string", True, "Part number"),
            ParameterDefinition("quantity", "number", True, "Quantity used"),
        ),
        examples=(
            ActionExample("Add 2 filters to job 1234",
                          {"jobNumber": "1234", "partNumber": "filters", "quantity": 2}),
        ),
    ),
    ActionDefinition(
        name="SEARCH_JOBS",
        category="JOB_MANAGEMENT",
        description="Search for jobs.",
        keywords=frozenset({"search", "find", "list", "jobs", "work orders"}),
        parameters=(
            ParameterDefinition("customerName", "string", False, "Filter by customer"),
            ParameterDefinition("status", "string", False, "Filter by status"),
        ),
        examples=(
            ActionExample("Show jobs for ABC Heating", {"customerName": "ABC Heating"}),
            ActionExample("List completed jobs", {"status": "completed"}),
        ),
    ),
    # Supplier management
    ActionDefinition(
        name="ADD_SUPPLIER",
        category="SUPPLIER_MANAGEMENT",
        description="Create a new supplier.",
        keywords=frozenset({"new", "add", "create", "supplier", "vendor"}),
        parameters=(
            ParameterDefinition("name", "string", True, "Supplier name"),
            ParameterDefinition("contactName", "string", False, "Contact person"),
            ParameterDefinition("email", "string", False, "Email address"),
            ParameterDefinition("phone", "string", False, "Phone number"),
        ),
        examples=(ActionExample("New supplier Acme Corp", {"name": "Acme Corp"}),),
    ),
    ActionDefinition(
        name="CREATE_ORDER",
        category="SUPPLIER_MANAGEMENT",
        description="Create a purchase order.",
        keywords=frozenset({"create", "new", "order", "purchase", "from"}),
        parameters=(
            ParameterDefinition("supplierName", "string", True, "Supplier name"),
            ParameterDefinition("items", "array", True, "Items to order"),
        ),
        examples=(ActionExample("Create order from Acme Corp", {"supplierName": "Acme Corp"}),),
    ),
    ActionDefinition(
        name="RECEIVE_ORDER",
        category="SUPPLIER_MANAGEMENT",
        description="Mark a purchase order as received.",
        keywords=frozenset({"receive", "received", "order", "purchase"}),
        parameters=(ParameterDefinition("poNumber", "string", True, "Purchase order number"),),
        examples=(ActionExample("Receive order PO-1234", {"poNumber": "PO-1234"}),),
    ),
    # Equipment management
    ActionDefinition(
        name="ADD_EQUIPMENT",
        category="EQUIPMENT_MANAGEMENT",
        description="Add equipment/asset at a customer site.",
        keywords=frozenset({"add", "new", "equipment", "asset", "boiler", "chiller", "pump"}),
        parameters=(
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("equipmentName", "string", True, "Equipment identifier"),
            ParameterDefinition("type", "string", True, "Equipment type"),
            ParameterDefinition("manufacturer", "string", False, "Manufacturer"),
            ParameterDefinition("model", "string", False, "Model number"),
            ParameterDefinition("serialNumber", "string", False, "Serial number"),
        ),
        examples=(
            ActionExample(
                "Add boiler Main Boiler for ABC Heating",
                {"customerName": "ABC Heating", "equipmentName": "Main Boiler", "type": "boiler"},
            ),
        ),
    ),
    ActionDefinition(
        name="UPDATE_EQUIPMENT",
        category="EQUIPMENT_MANAGEMENT",
        description="Update equipment details.",
        keywords=frozenset({"update", "change", "equipment"}),
        parameters=(
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("equipmentName", "string", True, "Equipment name"),
            ParameterDefinition("notes", "string", False, "Technical notes"),
        ),
        examples=(
            ActionExample("Update Main Boiler for ABC Heating",
                          {"customerName": "ABC Heating", "equipmentName": "Main Boiler"}),
        ),
    ),
    ActionDefinition(
        name="INSTALL_PART",
        category="EQUIPMENT_MANAGEMENT",
        description="Install a part on customer equipment.",
        keywords=frozenset({"install", "fit", "replace", "on", "equipment"}),
        parameters=(
            ParameterDefinition("partNumber", "string", True, "Part number"),
            ParameterDefinition("quantity", "number", True, "Quantity"),
            ParameterDefinition("customerName", "string", True, "Customer name"),
            ParameterDefinition("equipmentName", "string", True, "Equipment name"),
            ParameterDefinition("location", "string", False, "Stock location"),
        ),
        examples=(
            ActionExample(
                "Install filter on Main Boiler for ABC Heating",
                {"partNumber": "filter", "customerName": "ABC Heating",
                 "equipmentName": "Main Boiler"},
            ),
        ),
    ),
    ActionDefinition(
        name="SEARCH_EQUIPMENT",
        category="EQUIPMENT_MANAGEMENT",
        description="Search for equipment.",
        keywords=frozenset({"search", "find", "list", "equipment"}),
        parameters=(
            ParameterDefinition("customerName", "string", False, "Filter by customer"),
            ParameterDefinition("type", "string", False, "Filter by type"),
        ),
        examples=(ActionExample("Show equipment for ABC Heating", {"customerName": "ABC Heating"}),),
    ),
    # General query, also the label used when nothing else fits
    ActionDefinition(
        name="QUERY_INVENTORY",
        category="GENERAL",
        description="General inventory query or unclear intent.",
        keywords=frozenset({"what", "how", "many", "where", "query"}),
        parameters=(ParameterDefinition("search", "string", False, "Free-text query"),),
        examples=(ActionExample("How many bearings are there?", {"search": "bearings"}),),
    ),
)

# Deprecated and synonym action names mapped to their canonical action.
# ADJUST_STOCK maps to ADD_STOCK as the common case; decreases use REMOVE_STOCK.
ACTION_ALIASES: dict[str, str] = {
    "RECEIVE_STOCK": "ADD_STOCK",
    "USE_STOCK": "REMOVE_STOCK",
    "STOCK_COUNT": "COUNT_STOCK",
    "CREATE_CATALOGUE_ITEM": "ADD_PRODUCT",
    "UPDATE_CATALOGUE_ITEM": "UPDATE_PRODUCT",
    "CREATE_CUSTOMER": "ADD_CUSTOMER",
    "ADD_SITE_ADDRESS": "ADD_SITE",
    "CREATE_EQUIPMENT": "ADD_EQUIPMENT",
    "INSTALL_FROM_STOCK": "INSTALL_PART",
    "INSTALL_DIRECT_ORDER": "INSTALL_PART",
    "ADD_PART_TO_JOB": "ADD_PARTS_TO_JOB",
    "LIST_JOBS": "SEARCH_JOBS",
    "LIST_EQUIPMENT": "SEARCH_EQUIPMENT",
    "CREATE_SUPPLIER": "ADD_SUPPLIER",
    "CREATE_PURCHASE_ORDER": "CREATE_ORDER",
    "RECEIVE_PURCHASE_ORDER": "RECEIVE_ORDER",
    "CREATE_PRODUCT": "ADD_PRODUCT",
    "ADJUST_STOCK": "ADD_STOCK",
    "CREATE_CATALOGUE_ITEM_AND_ADD_STOCK": "ADD_PRODUCT",
    "CREATE_CATALOGUE_ITEM_WITH_DETAILS": "ADD_PRODUCT",
}

_ACTIONS_BY_NAME: dict[str, ActionDefinition] = {action.name: action for action in ACTION_REGISTRY}


def find_action(name: str) -> ActionDefinition | None:
    """Look up an action definition by its canonical name."""
    return _ACTIONS_BY_NAME.get(name)


def get_actions_by_category(category: str) -> list[ActionDefinition]:
    """Return all actions in a category, in registry order."""
    return [action for action in ACTION_REGISTRY if action.category == category]


def normalize_action_name(action: str) -> str:
    """Normalize an action name, resolving aliases.

    Args:
        action: Raw action label, any case (e.g. "receive_stock")

    Returns:
        Canonical action name, or the upper-cased input if no alias exists
    """
    upper = action.strip().upper()
    return ACTION_ALIASES.get(upper, upper)


def is_registered(action: str) -> bool:
    """Check whether a (possibly aliased) action name resolves to the registry."""
    return normalize_action_name(action) in _ACTIONS_BY_NAME


def required_parameters(action: str) -> list[str]:
    """Required parameter names for an action, or [] if it is unknown."""
    definition = find_action(normalize_action_name(action))
    if definition is None:
        return []
    return definition.required_parameters


def describe_actions(actions: tuple[ActionDefinition, ...] | None = None) -> str:
    """Render the registry as a text catalogue for classifier/extractor prompts.

    Args:
        actions: Subset of actions to describe (default: the whole registry)

    Returns:
        Multi-line text, one block per action
    """
    blocks = []
    for action in actions or ACTION_REGISTRY:
        lines = [f"{action.name} ({action.category}): {action.description}"]
        lines.append(f"  keywords: {', '.join(sorted(action.keywords))}")
        for param in action.parameters:
            flag = "required" if param.required else "optional"
            lines.append(f"  - {param.name} ({param.type}, {flag}): {param.description}")
        for example in action.examples:
            lines.append(f'  e.g. "{example.input}" -> {example.expected_params}')
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
