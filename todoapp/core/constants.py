"""アプリケーション定数管理

バリデーション値、制限値、エラーメッセージを一元管理
"""

# =============================================================================
# システム識別子
# =============================================================================

# 操作者が不明な場合に使用するシステムユーザーID
SYSTEM_USER_ID = "system"


# =============================================================================
# Todo関連定数
# =============================================================================


class TodoConstants:
    """Todo関連の定数"""

    # タイトル設定
    TITLE_MIN_LENGTH = 1
    TITLE_MAX_LENGTH = 200

    # 説明設定
    DESCRIPTION_MAX_LENGTH = 1000

    # デフォルト値
    DEFAULT_COMPLETED = False


# =============================================================================
# ユーザー関連定数
# =============================================================================


class UserConstants:
    """ユーザー関連の定数"""

    # 名前設定
    NAME_MIN_LENGTH = 1
    NAME_MAX_LENGTH = 100

    # メール設定
    EMAIL_MAX_LENGTH = 254

    # プロフィール設定
    BIO_MAX_LENGTH = 500
    URL_MAX_LENGTH = 2048

    # 新規アカウントのデフォルトロール（最小権限）
    DEFAULT_ROLES = ["user"]

    # 一覧取得の上限
    LIST_DEFAULT_LIMIT = 100
    LIST_MAX_LIMIT = 1000


# =============================================================================
# ロール関連定数
# =============================================================================


class RoleConstants:
    """ロール関連の定数"""

    NAME_MIN_LENGTH = 1
    NAME_MAX_LENGTH = 50
    DESCRIPTION_MAX_LENGTH = 255

    ADMIN_ROLE = "admin"
    USER_ROLE = "user"


# =============================================================================
# API関連定数
# =============================================================================


class APIConstants:
    """API関連の定数"""

    # ページネーション設定
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100
    MIN_PAGE_SIZE = 1

    # ソート設定
    DEFAULT_SORT_FIELD = "created_at"
    DEFAULT_SORT_ORDER = "desc"

    ALLOWED_SORT_ORDERS = ["asc", "desc"]

    # Todo用ソート可能フィールド
    TODO_SORTABLE_FIELDS = ["created_at", "updated_at", "title", "completed"]

    # ユーザー用ソート可能フィールド
    USER_SORTABLE_FIELDS = ["created_at", "updated_at", "name", "email"]

    # ロール用ソート可能フィールド
    ROLE_SORTABLE_FIELDS = ["created_at", "name"]


# =============================================================================
# セキュリティ関連定数
# =============================================================================


class SecurityConstants:
    """セキュリティ関連の定数"""

    # JWT設定
    MIN_JWT_SECRET_LENGTH = 32
    ALLOWED_JWT_ALGORITHMS = ["HS256", "HS384", "HS512", "RS256", "RS384", "RS512"]

    MIN_DB_PASSWORD_LENGTH_PRODUCTION = 12

    # 外部認証プロバイダー
    AUTH_PROVIDER_TIMEOUT_MIN = 1
    AUTH_PROVIDER_TIMEOUT_MAX = 60


# =============================================================================
# データベース関連定数
# =============================================================================


class DatabaseConstants:
    """データベース関連の定数"""

    # 接続プール設定
    DB_POOL_SIZE_MIN = 1
    DB_POOL_SIZE_MAX = 50
    DB_MAX_OVERFLOW_MIN = 0
    DB_MAX_OVERFLOW_MAX = 100


# =============================================================================
# 監査ログ関連定数
# =============================================================================


class AuditAction:
    """監査ログのアクション種別"""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# =============================================================================
# レスポンスメッセージ定数
# =============================================================================


class SuccessMessages:
    """成功メッセージの定数"""

    TODO_CREATED = "Todoが作成されました"
    TODO_UPDATED = "Todoが更新されました"
    TODO_DELETED = "Todoが削除されました"

    USER_CREATED = "ユーザーが正常に作成されました"
    USER_UPDATED = "ユーザー情報が更新されました"
    USER_DELETED = "ユーザーが削除されました"


# =============================================================================
# エラーメッセージ定数
# =============================================================================


class ErrorMessages:
    """エラーメッセージの定数"""

    # Todo関連
    TODO_NOT_FOUND = "Todoが見つかりません"
    TODO_NOT_FOUND_OR_NOT_OWNED = "Todoが見つからないか、アクセス権がありません"
    TODO_TITLE_REQUIRED = "タイトルは必須です"
    TODO_TITLE_TOO_LONG = f"タイトルは{TodoConstants.TITLE_MAX_LENGTH}文字以内で入力してください"
    TODO_DESCRIPTION_TOO_LONG = f"説明は{TodoConstants.DESCRIPTION_MAX_LENGTH}文字以内で入力してください"

    # ユーザー関連
    USER_NOT_FOUND = "ユーザーが見つかりません"
    USER_ID_REQUIRED = "ユーザーIDは必須です"
    EMAIL_REQUIRED = "メールアドレスは必須です"
    EMAIL_ALREADY_EXISTS = "このメールアドレスは既に登録されています"
    NAME_REQUIRED = "名前は必須です"
    NAME_TOO_LONG = f"名前は{UserConstants.NAME_MAX_LENGTH}文字以内で入力してください"
    BIO_TOO_LONG = f"自己紹介は{UserConstants.BIO_MAX_LENGTH}文字以内で入力してください"
    URL_TOO_LONG = f"URLは{UserConstants.URL_MAX_LENGTH}文字以内で入力してください"
    ROLES_REQUIRED = "ロールを1つ以上指定してください"
    USER_CREATE_VIA_AUTH_PROVIDER = "ユーザーの作成は認証プロバイダーのサインアップ経由で行ってください"

    # ロール関連
    ROLE_NOT_FOUND = "ロールが見つかりません"
    ROLE_NAME_REQUIRED = "ロール名は必須です"
    ROLE_NAME_TOO_LONG = f"ロール名は{RoleConstants.NAME_MAX_LENGTH}文字以内で入力してください"
    ROLE_DESCRIPTION_TOO_LONG = f"ロールの説明は{RoleConstants.DESCRIPTION_MAX_LENGTH}文字以内で入力してください"
    ROLE_NAME_DUPLICATE = "このロール名は既に使用されています"
    ROLES_NOT_FOUND = "存在しないロールが指定されました"

    # ID関連
    INVALID_ID_FORMAT = "IDの形式が正しくありません"

    # API関連
    INVALID_PAGE_SIZE = (
        f"ページサイズは{APIConstants.MIN_PAGE_SIZE}以上{APIConstants.MAX_PAGE_SIZE}以下で指定してください"
    )
    INVALID_SORT_FIELD = "指定されたソートフィールドは無効です"
    INVALID_SORT_ORDER = "ソート順序は'asc'または'desc'を指定してください"

    # 一般的なエラー
    VALIDATION_ERROR = "入力値に誤りがあります"
    SERVER_ERROR = "サーバーエラーが発生しました"
    DATABASE_ERROR = "データベース処理中にエラーが発生しました"
    EXTERNAL_SERVICE_ERROR = "外部サービスとの通信に失敗しました"
    NOT_FOUND = "リソースが見つかりません"
    UNAUTHORIZED = "認証が必要です"
    INVALID_TOKEN = "認証トークンが無効です"
    FORBIDDEN = "アクセスが拒否されました"
    CONFLICT = "リソースが競合しています"
    BUSINESS_RULE_VIOLATION = "業務ルールに違反しています"
