import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgledger.core.access import require_admin, require_membership
from orgledger.core.dependencies import get_current_user
from orgledger.database import get_db
from orgledger.models.category import ExpenseCategory
from orgledger.models.user import User
from orgledger.schemas.category import CategoryResponse, CategoryWriteRequest, DeleteResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orgs/{organization_id}/categories", tags=["categories"])

DUPLICATE_NAME_DETAIL = "A category with this name already exists"


def _normalize_name(value: str) -> str:
    name = value.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category name is required",
        )
    return name


async def _ensure_unique_name(
    db: AsyncSession,
    organization_id: uuid.UUID,
    name: str,
    exclude_id: uuid.UUID | None = None,
) -> None:
    query = select(ExpenseCategory.id).where(
        ExpenseCategory.organization_id == organization_id,
        func.lower(ExpenseCategory.name) == name.lower(),
    )
    if exclude_id is not None:
        query = query.where(ExpenseCategory.id != exclude_id)

    result = await db.execute(query)
    if result.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_NAME_DETAIL)


async def _get_category(
    db: AsyncSession, organization_id: uuid.UUID, category_id: uuid.UUID
) -> ExpenseCategory:
    # Scoped by organization: another tenant's category is indistinguishable from a missing one
    result = await db.execute(
        select(ExpenseCategory).where(
            ExpenseCategory.id == category_id,
            ExpenseCategory.organization_id == organization_id,
        )
    )
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


async def _flush_unique(db: AsyncSession) -> None:
    """Flush, mapping a lost race on the name index to a conflict."""
    try:
        await db.flush()
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_NAME_DETAIL)


@router.get("", response_model=list[CategoryResponse], summary="List Categories")
async def list_categories(
    organization_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_membership(db, current_user, organization_id)
    result = await db.execute(
        select(ExpenseCategory)
        .where(ExpenseCategory.organization_id == organization_id)
        .order_by(ExpenseCategory.name.asc())
    )
    return result.scalars().all()


@router.post("", response_model=CategoryResponse, status_code=201, summary="Create Category")
async def create_category(
    organization_id: uuid.UUID,
    request: CategoryWriteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_admin(db, current_user, organization_id)

    name = _normalize_name(request.name)
    await _ensure_unique_name(db, organization_id, name)

    category = ExpenseCategory(
        organization_id=organization_id,
        name=name,
        description=request.description,
    )
    db.add(category)
    await _flush_unique(db)

    logger.info(
        f"Category {category.id} created",
        extra={"user_id": str(current_user.id), "org_id": str(organization_id)},
    )
    return category


@router.put("/{category_id}", response_model=CategoryResponse, summary="Update Category")
async def update_category(
    organization_id: uuid.UUID,
    category_id: uuid.UUID,
    request: CategoryWriteRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename a category and replace its description (omitted clears it)."""
    await require_admin(db, current_user, organization_id)
    category = await _get_category(db, organization_id, category_id)

    name = _normalize_name(request.name)
    await _ensure_unique_name(db, organization_id, name, exclude_id=category.id)

    category.name = name
    category.description = request.description
    await _flush_unique(db)
    await db.refresh(category)

    logger.info(
        f"Category {category.id} updated",
        extra={"user_id": str(current_user.id), "org_id": str(organization_id)},
    )
    return category


@router.delete("/{category_id}", response_model=DeleteResponse, summary="Delete Category")
async def delete_category(
    organization_id: uuid.UUID,
    category_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await require_admin(db, current_user, organization_id)
    category = await _get_category(db, organization_id, category_id)

    await db.delete(category)
    await db.flush()

    logger.info(
        f"Category {category_id} deleted",
        extra={"user_id": str(current_user.id), "org_id": str(organization_id)},
    )
    return DeleteResponse()
