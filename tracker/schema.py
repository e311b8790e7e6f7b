SCHEMA_SQL = r"""
-- Batches (one planned production run)
CREATE TABLE IF NOT EXISTS batches (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  target_qty INTEGER NOT NULL DEFAULT 1,

  -- Derived from batch_costs + target_qty; rebuilt on every save
  grand_total REAL NOT NULL DEFAULT 0,
  unit_cost REAL NOT NULL DEFAULT 0,

  margin_per_unit REAL NOT NULL DEFAULT 0,
  selling_price REAL NOT NULL DEFAULT 0,

  -- Storefront fields
  public_name TEXT,
  description TEXT,
  category TEXT,
  is_public INTEGER NOT NULL DEFAULT 0,

  -- First-release calculator inputs (JSON {p_mat: .., q_mat: ..}), kept for upgrade
  legacy_inputs TEXT
);

-- Cost components owned by a batch
CREATE TABLE IF NOT EXISTS batch_costs (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  batch_id INTEGER NOT NULL,
  position INTEGER NOT NULL DEFAULT 0,
  component_id TEXT NOT NULL,
  name TEXT NOT NULL,
  rate REAL NOT NULL DEFAULT 0,
  qty REAL NOT NULL DEFAULT 0,
  unit TEXT,
  type TEXT NOT NULL DEFAULT 'FIXED',   -- FIXED / PER_UNIT
  FOREIGN KEY (batch_id) REFERENCES batches(id) ON DELETE CASCADE
);

-- Sales. batch_id is a plain lookup column: deleting a batch keeps its sales.
CREATE TABLE IF NOT EXISTS sales (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  batch_id INTEGER,
  date TEXT NOT NULL,                    -- ISO date
  cust_name TEXT NOT NULL,
  cust_phone TEXT,
  cust_address TEXT,
  ship_order_id TEXT,
  status TEXT NOT NULL DEFAULT 'New',    -- New / Pending / Shipped / Delivered / Cancelled
  qty INTEGER NOT NULL,
  price REAL NOT NULL DEFAULT 0,         -- net, after discount
  discount REAL NOT NULL DEFAULT 0,
  profit REAL NOT NULL DEFAULT 0,        -- frozen at save time
  courier TEXT,
  tracking_number TEXT,
  payment_screenshot BLOB,
  notes TEXT
);

-- Ledger (deposits and expenses)
CREATE TABLE IF NOT EXISTS expenses (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  date TEXT NOT NULL,
  description TEXT NOT NULL,
  amount REAL NOT NULL,
  category TEXT NOT NULL DEFAULT 'General',
  type TEXT NOT NULL                     -- CREDIT / DEBIT
);

CREATE INDEX IF NOT EXISTS idx_batch_costs_batch ON batch_costs(batch_id);
CREATE INDEX IF NOT EXISTS idx_sales_batch ON sales(batch_id);
CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date);
CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);
"""
