from pydantic import BaseModel
from typing import List, Optional


class BulkImportRequest(BaseModel):
    start_code: Optional[str] = None
    end_code: Optional[str] = None
    preview_only: bool = False
    created_by: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    customer_ids: Optional[List[int]] = None
    customer_codes: Optional[List[str]] = None
